"""Conversation management: create, list, read, rename and delete a user's chats."""

from shared.clients.store.StoreClientInterface import FIELD_TITLE, StoreClientInterface
from shared.exceptions import InvalidInputError, UnauthorizedError
from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import DEFAULT_CONTEXT, Conversation, ConversationSummary, validate_bucket_names

DEFAULT_TITLE = "New chat"


class ConversationService:
    def __init__(self, helper_config: HelperConfig, store_client: StoreClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._store = store_client
        self._default_title = helper_config.get_string_val("CHAT_DEFAULT_TITLE", default=DEFAULT_TITLE)
        self._buckets = validate_bucket_names(
            helper_config.get_list_val("CHAT_CONTEXT_BUCKETS", default=[DEFAULT_CONTEXT])
        )

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_create(self, user_id: str) -> Conversation:
        """Create an empty conversation with every configured context bucket."""
        conversation = await self._store.do_create_conversation(
            user_id=user_id,
            title=self._default_title,
            buckets=self._buckets,
            active_context=DEFAULT_CONTEXT,
        )
        self.logging.info("User %s created conversation %s.", user_id, conversation.id)
        return conversation

    async def do_list(self, user_id: str) -> list[ConversationSummary]:
        return await self._store.do_list_conversations(user_id)

    async def do_get_owned(self, conversation_id: str, user_id: str) -> Conversation:
        """Read a conversation and check it belongs to user_id.

        Raises:
            NotFoundError: If the conversation does not exist.
            UnauthorizedError: If it belongs to another user.
        """
        conversation = await self._store.do_get_conversation(conversation_id)
        if conversation.user_id != user_id:
            self.logging.warning("User %s tried to access conversation %s of another user.", user_id, conversation_id)
            raise UnauthorizedError()
        return conversation

    async def do_rename(self, conversation_id: str, user_id: str, title: str) -> Conversation:
        """
        Raises:
            InvalidInputError: If the trimmed title is empty.
        """
        title = (title or "").strip()
        if not title:
            raise InvalidInputError("The title must not be empty.")
        await self.do_get_owned(conversation_id, user_id)
        await self._store.do_update_conversation(conversation_id, set_fields={FIELD_TITLE: title})
        return await self._store.do_get_conversation(conversation_id)

    async def do_delete(self, conversation_id: str, user_id: str) -> None:
        await self.do_get_owned(conversation_id, user_id)
        await self._store.do_delete_conversation(conversation_id)
        self.logging.info("User %s deleted conversation %s.", user_id, conversation_id)
