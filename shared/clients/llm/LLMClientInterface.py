from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions import BackendRequestError, GenerationFailedError
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ChatTurn, ContentPart


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL")
        self.temperature = helper_config.get_number_val(f"{self.get_client_type().upper()}_TEMPERATURE", default=0.2)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/api/chat")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, history: list[ChatTurn], parts: list[ContentPart]) -> dict:
        """Build the backend-specific request body for a chat request.

        Args:
            history (list[ChatTurn]): Prior turns that seed the session, oldest first.
            parts (list[ContentPart]): Content of the new user turn (text and/or inline binary).

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str | None:
        """Extract the reply text from a raw chat API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            str | None: The reply text of the first candidate, or None if the
                response carries no text.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, history: list[ChatTurn], parts: list[ContentPart]) -> str | None:
        """Start a session seeded with history, send parts as the new turn and return the reply.

        Args:
            history (list[ChatTurn]): Prior turns, oldest first. May be empty.
            parts (list[ContentPart]): Content of the new user turn.

        Returns:
            str | None: The reply text, or None if the model produced no text.

        Raises:
            GenerationFailedError: If the request fails or returns a non-2xx status.
        """
        body = self.get_chat_payload(history, parts)
        try:
            response = await self.do_request(
                method="POST",
                endpoint=self._get_endpoint_chat(),
                json=body,
                raise_on_error=True,
            )
        except (BackendRequestError, httpx.HTTPError) as exc:
            raise GenerationFailedError(f"Chat request to '{self.get_engine_name()}' failed: {exc}") from exc
        return self.extract_chat_response(response.json())

    async def do_generate(self, parts: list[ContentPart]) -> str | None:
        """Single-shot generation without history (transcription, image description).

        Args:
            parts (list[ContentPart]): Instruction text and inline data.

        Returns:
            str | None: The generated text, or None if the model produced no text.

        Raises:
            GenerationFailedError: If the request fails.
        """
        return await self.do_chat(history=[], parts=parts)
