from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ChatTurn, ContentPart
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, history: list[ChatTurn], parts: list[ContentPart]) -> dict:
        """Build the Ollama chat request body.

        Ollama only accepts images as inline binary; they travel base64-encoded
        in the "images" list of the final user message.

        Returns:
            dict: {"model": "...", "messages": [...], "stream": False, "options": {...}}
        """
        messages = [
            {"role": "user" if turn.role == "user" else "assistant", "content": turn.content}
            for turn in history
        ]
        final = {
            "role": "user",
            "content": "\n\n".join(part.text for part in parts if part.text),
        }
        images = [part.get_base64() for part in parts if part.data is not None]
        if images:
            final["images"] = images
        messages.append(final)
        return {
            "model": self.chat_model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": self.temperature},
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str | None:
        content = (response_data.get("message") or {}).get("content")
        return content or None
