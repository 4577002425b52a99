from abc import ABC, abstractmethod
from typing import Any

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData, RequestFiles

from shared.exceptions import BackendRequestError, ConfigurationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """Base of every external backend client (store, blob, llm, embed, rag).

    A client is configured from "<TYPE>_<ENGINE>_<KEY>" environment variables,
    owns one httpx.AsyncClient between boot() and close() and sends all
    traffic through do_request().
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)
        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """Read every declared config key once so a missing one fails at construction.

        Raises:
            ConfigurationError: If a required key is unset or malformed.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """Client family, e.g. "store" or "rag"."""
        pass

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """Backend product, e.g. "Firestore" or "Qdrant"."""
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Engine-level keys checked by validate_full_configuration()."""
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """Prefix raw_key with type and engine, e.g. "PROJECT" → "STORE_FIRESTORE_PROJECT"."""
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read an engine-level setting.

        Args:
            raw_key (str): Key without the type/engine prefix.
            default (Any): Returned when unset; None makes the key mandatory.
            val_type (str): One of "string", "number", "bool", "list".

        Raises:
            ConfigurationError: If the key is mandatory and unset, or val_type is unknown.
        """
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        reader = readers.get(val_type)
        if reader is None:
            raise ConfigurationError(
                f"Unsupported config value type '{val_type}' for key '{raw_key}' "
                f"of {self.get_client_type().upper()} client '{self.get_engine_name()}'."
            )
        return reader(self._get_config_key_name(raw_key), default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers authenticating against the backend; empty if no credential is configured."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """Path of a cheap GET proving the backend is reachable and the credentials work."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """
        Raises:
            BackendRequestError: If the backend answers with a non-2xx status.
            httpx.HTTPError: If it cannot be reached.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Open the HTTP connection pool. Tests pass an httpx.MockTransport."""
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_url(self, endpoint: str) -> str:
        endpoint = endpoint.strip()
        if not endpoint:
            return self._get_base_url().rstrip("/")
        return f"{self._get_base_url().rstrip('/')}/{endpoint.lstrip('/')}"

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        data: RequestData | None = None,
        files: RequestFiles | None = None,
        json: dict | list | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send one request to the backend.

        At most one of content, data, files and json is sent, in that order of
        precedence. Raw content needs its Content-Type via additional_headers.

        Args:
            method (str): HTTP verb.
            endpoint (str): Path below the base URL.
            additional_headers (dict | None): Merged over the auth headers.
            raise_on_error (bool): Turn a non-2xx answer into BackendRequestError.

        Returns:
            httpx.Response: The unread response.

        Raises:
            BackendRequestError: If the client was not booted, or on a non-2xx
                status when raise_on_error is set.
            httpx.HTTPError: On transport failures.
        """
        if self._client is None:
            raise BackendRequestError(
                f"{self.get_client_type().upper()} client '{self.get_engine_name()}' used before boot()."
            )

        url = self._get_url(endpoint)
        headers = {**self._get_auth_header(), **(additional_headers or {})}
        body: dict = {}
        for name, value in (("content", content), ("data", data), ("files", files), ("json", json)):
            if value is not None:
                body[name] = value
                break

        response = await self._client.request(method, url, headers=headers, params=params, timeout=self.timeout, **body)

        if raise_on_error and response.status_code >= 300:
            self.logging.error("%s %s answered %d: %s", method, url, response.status_code, response.text[:500])
            raise BackendRequestError(
                f"{method} {url} failed with status {response.status_code}",
                response_status=response.status_code,
            )
        return response
