from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ChatTurn, ContentPart
from shared.models.config import EnvConfig


class LLMClientGemini(LLMClientInterface):
    """Gemini generateContent over REST.

    The session history is sent as "contents"; roles are "user" and "model".
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://generativelanguage.googleapis.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._api_version = self.get_config_val("API_VERSION", default="v1beta", val_type="string")

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
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_model_path(self) -> str:
        return self.chat_model if self.chat_model.startswith("models/") else f"models/{self.chat_model}"

    def _get_endpoint_healthcheck(self) -> str:
        return f"/{self._api_version}/{self._get_model_path()}"

    def _get_endpoint_chat(self) -> str:
        return f"/{self._api_version}/{self._get_model_path()}:generateContent"

    ################ PAYLOAD BUILDER ##################
    @staticmethod
    def _to_part(part: ContentPart) -> dict:
        if part.data is not None:
            return {"inlineData": {"mimeType": part.mime_type, "data": part.get_base64()}}
        return {"text": part.text or ""}

    def get_chat_payload(self, history: list[ChatTurn], parts: list[ContentPart]) -> dict:
        contents = [{"role": turn.role, "parts": [{"text": turn.content}]} for turn in history]
        contents.append({"role": "user", "parts": [self._to_part(part) for part in parts]})
        return {
            "contents": contents,
            "generationConfig": {"temperature": self.temperature},
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str | None:
        """Return the text of the first candidate's first content part, if any."""
        candidates = response_data.get("candidates") or []
        if not candidates:
            return None
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts:
            return None
        return parts[0].get("text") or None
