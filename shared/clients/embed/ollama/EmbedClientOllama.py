from typing import Tuple

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    """Local embeddings through Ollama's /api/embed."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_required_config(self) -> list[EnvConfig]:
        return [EnvConfig(env_key="BASE_URL", val_type="string", default=None)]

    def _get_auth_header(self) -> dict:
        # only needed behind an authenticating proxy
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/version"

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        embeddings = response_data.get("embeddings") or []
        if not embeddings:
            raise ValueError(f"Ollama answered without embeddings (keys: {sorted(response_data)}).")
        return embeddings

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """Read "<architecture>.embedding_length" from /api/show.

        Raises:
            ValueError: If the model info does not report it.
        """
        response = await self.do_request(
            method="POST",
            endpoint="/api/show",
            json={"model": self.embed_model},
            raise_on_error=True,
        )
        model_info: dict = response.json().get("model_info") or {}
        lengths = [value for key, value in model_info.items() if key.endswith(".embedding_length")]
        if not lengths:
            raise ValueError(f"Ollama reports no embedding length for model '{self.embed_model}'.")
        return int(lengths[0]), self.embed_distance
