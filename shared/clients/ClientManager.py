from typing import Any

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions import ConfigurationError
from shared.helper.HelperConfig import HelperConfig


class ClientManager:
    """
    Base class for the per-type client managers.

    Reads "<TYPE>_ENGINE" from the configuration and instantiates
    shared.clients.<type>.<engine>.<ClassPrefix><Engine>, e.g.
    RAG_ENGINE=qdrant → shared.clients.rag.qdrant.RAGClientQdrant.
    Subclasses only set client_type and class_prefix.
    """

    client_type: str = ""
    class_prefix: str = ""

    def __init__(self, helper_config: HelperConfig, **client_kwargs: Any):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self._client_kwargs = client_kwargs
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine name from ENV configuration.

        Returns:
            str: Capitalised engine name (e.g. "Qdrant").

        Raises:
            ConfigurationError: If no engine is specified in the configuration.
        """
        env_key = f"{self.client_type.upper()}_ENGINE"
        engine = self.helper_config.get_string_val(env_key, default="")
        if not engine:
            raise ConfigurationError(f"No {self.client_type.upper()} engine specified in configuration ({env_key}).")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface:
        """
        Instantiates the client for the configured engine.

        Returns:
            ClientInterface: The instantiated client.

        Raises:
            ConfigurationError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"{self.class_prefix}{engine}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Unsupported {self.client_type.upper()} engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config, **self._client_kwargs)
        self.logging.debug("Instantiated %s client for engine: %s", self.client_type.upper(), engine)
        return client

    def get_client(self) -> ClientInterface:
        """
        Returns the instantiated client.
        """
        return self.client
