from typing import Tuple

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientGemini(EmbedClientInterface):
    """Embeddings through the Gemini API (batchEmbedContents)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://generativelanguage.googleapis.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._api_version = self.get_config_val("API_VERSION", default="v1beta", val_type="string")
        self._dimension = int(self.get_config_val("DIMENSION", default=768, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Gemini"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="DIMENSION", val_type="number", default=768),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/{self._api_version}/{self._get_model_path()}"

    def get_endpoint_embedding(self) -> str:
        return f"/{self._api_version}/{self._get_model_path()}:batchEmbedContents"

    def _get_model_path(self) -> str:
        return self.embed_model if self.embed_model.startswith("models/") else f"models/{self.embed_model}"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        model = self._get_model_path()
        return {
            "requests": [
                {
                    "model": model,
                    "content": {"parts": [{"text": text}]},
                    "outputDimensionality": self._dimension,
                }
                for text in texts
            ]
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract vectors from {"embeddings": [{"values": [...]}, ...]}."""
        embeddings = [item.get("values") or [] for item in response_data.get("embeddings") or []]
        if not embeddings or not embeddings[0]:
            raise ValueError(
                "Gemini response does not contain valid embeddings. "
                f"Response keys: {list(response_data.keys())}"
            )
        return embeddings

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        # the Gemini model endpoint does not expose the output size; it is requested explicitly
        return self._dimension, self.embed_distance
