"""Chat service: answers one user message with retrieval-augmented generation.

Per message: load the conversation, handle the superuser toggle commands,
collect the searchable document ids, retrieve the closest chunks, wrap them
around the question, generate the answer and persist both turns.
"""

import httpx

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.store.StoreClientInterface import FIELD_SUPERUSER_MODE, StoreClientInterface
from shared.exceptions import ChatBackendError, InvalidInputError
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ChatTurn, ContentPart
from shared.models.conversation import Conversation, Message, MessageSender
from shared.prompts import (
    FALLBACK_ANSWER,
    SUPERUSER_DISABLED_MESSAGE,
    SUPERUSER_ENABLED_MESSAGE,
    build_context_prompt,
)

RETRIEVAL_TOP_K = 5


class ChatService:
    """Orchestrates scope resolution, retrieval, prompt augmentation, generation and persistence."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        llm_client: LLMClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store_client
        self._embed = embed_client
        self._rag = rag_client
        self._llm = llm_client

        self._top_k = int(helper_config.get_number_val("CHAT_RETRIEVAL_TOP_K", default=RETRIEVAL_TOP_K))
        self._superuser_secret = helper_config.get_string_val("CHAT_SUPERUSER_SECRET", default="")
        self._exit_keyword = helper_config.get_string_val("CHAT_SUPERUSER_EXIT_KEYWORD", default="exit")

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_handle_message(self, conversation_id: str, history: list[ChatTurn]) -> Conversation:
        """Answer the last turn of history and persist the exchange.

        Args:
            conversation_id (str): The conversation the message belongs to.
            history (list[ChatTurn]): All turns so far, oldest first; the last
                one is the new user utterance.

        Returns:
            Conversation: The conversation re-read after the update.

        Raises:
            InvalidInputError: If history is empty or does not end with a user turn.
            NotFoundError: If the conversation does not exist.
            GenerationFailedError: If the generative model call fails.
            StorageWriteFailedError: If persisting the exchange fails.
        """
        if not history or history[-1].role != "user":
            raise InvalidInputError("The conversation history must end with a user message.")
        utterance = history[-1].content

        conversation = await self._store.do_get_conversation(conversation_id)

        if await self._handle_mode_toggle(conversation, utterance):
            return await self._store.do_get_conversation(conversation_id)

        prompt = await self._build_prompt(conversation, utterance)

        answer = await self._llm.do_chat(history=history[:-1], parts=[ContentPart.from_text(prompt)])
        if not answer or not answer.strip():
            self.logging.warning("Model returned no text for conversation %s, using fallback answer.", conversation_id)
            answer = FALLBACK_ANSWER

        await self._store.do_append_messages(
            conversation_id,
            [
                Message(sender=MessageSender.USER, text=utterance),
                Message(sender=MessageSender.AI, text=answer),
            ],
        )
        return await self._store.do_get_conversation(conversation_id)

    ##########################################
    ############# MODE TOGGLE ################
    ##########################################

    async def _handle_mode_toggle(self, conversation: Conversation, utterance: str) -> bool:
        """Switch superuser mode on the secret / exit keyword.

        Only an exact match counts, padded text is an ordinary message. A
        command that would not change the mode falls through to a normal chat
        turn.

        Returns:
            bool: True if the mode was switched and the turn is finished.
        """
        if self._superuser_secret and utterance == self._superuser_secret and not conversation.superuser_mode:
            new_mode, acknowledgement = True, SUPERUSER_ENABLED_MESSAGE
        elif utterance == self._exit_keyword and conversation.superuser_mode:
            new_mode, acknowledgement = False, SUPERUSER_DISABLED_MESSAGE
        else:
            return False

        await self._store.do_append_messages(
            conversation.id,
            [Message(sender=MessageSender.BOT, text=acknowledgement)],
            set_fields={FIELD_SUPERUSER_MODE: new_mode},
        )
        self.logging.info(
            "Superuser mode %s for conversation %s.", "enabled" if new_mode else "disabled", conversation.id,
            color="magenta",
        )
        return True

    ##########################################
    ############## RETRIEVAL #################
    ##########################################

    async def _get_searchable_document_ids(self, conversation: Conversation) -> set[str]:
        """Ids of the active bucket plus the whole global pool.

        A failing global-pool read only narrows the scope to the active bucket.
        """
        document_ids = set(conversation.get_active_document_ids())
        try:
            global_documents = await self._store.do_list_global_documents()
        except (ChatBackendError, httpx.HTTPError) as exc:
            self.logging.warning("Reading the global document pool failed, searching the active bucket only: %s", exc)
            return document_ids
        document_ids.update(record.document_id for record in global_documents)
        return document_ids

    async def _build_prompt(self, conversation: Conversation, utterance: str) -> str:
        """Return the utterance wrapped in retrieved context, or unchanged if nothing was found."""
        document_ids = await self._get_searchable_document_ids(conversation)
        if not document_ids:
            self.logging.debug("No searchable documents for conversation %s.", conversation.id)
            return utterance

        try:
            query_vector = await self._embed.do_embed_text(utterance)
        except ChatBackendError as exc:
            self.logging.warning("Query embedding failed, answering without context: %s", exc)
            return utterance

        chunks = await self._rag.do_query(query_vector, document_ids, top_k=self._top_k)
        if not chunks:
            self.logging.info("No relevant chunks among %d document(s) for conversation %s.", len(document_ids), conversation.id)
            return utterance

        self.logging.info("Found %d relevant chunk(s) for conversation %s.", len(chunks), conversation.id)
        return build_context_prompt(utterance, chunks)
