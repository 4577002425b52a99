from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.VectorEntry import VectorEntry
from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import Conversation, ConversationSummary, DocumentRecord, Message

# field paths on a conversation record
FIELD_MESSAGES = "messages"
FIELD_CONTEXTS = "contexts"
FIELD_ACTIVE_CONTEXT = "activeContext"
FIELD_SUPERUSER_MODE = "superuserMode"
FIELD_TITLE = "title"


class StoreClientInterface(ClientInterface):
    """Document/metadata store holding conversations, the global document pool
    and the chunk texts of index backends that do not keep them inline.

    Appends are atomic array unions on the backend so concurrent writers do not
    lose each other's messages; updatedAt is always a server-assigned timestamp.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.collection_conversations = helper_config.get_string_val("STORE_COLLECTION_CONVERSATIONS", default="chats")
        self.collection_global_documents = helper_config.get_string_val("STORE_COLLECTION_GLOBAL_DOCUMENTS", default="globalDocuments")
        self.collection_chunks = helper_config.get_string_val("STORE_COLLECTION_CHUNKS", default="documentChunks")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_client_type(self) -> str:
        return "store"

    @staticmethod
    def get_context_field(bucket: str) -> str:
        """Field path of a context bucket array, e.g. "contexts.miscellaneous"."""
        return f"{FIELD_CONTEXTS}.{bucket}"

    ##########################################
    ########### CONVERSATIONS ################
    ##########################################

    @abstractmethod
    async def do_create_conversation(self, user_id: str, title: str, buckets: list[str], active_context: str) -> Conversation:
        """Create an empty conversation owned by user_id.

        Args:
            user_id (str): Owning user.
            title (str): Initial title.
            buckets (list[str]): Context buckets created as empty arrays.
            active_context (str): Bucket searched during retrieval.

        Returns:
            Conversation: The stored conversation, re-read from the backend.
        """
        pass

    @abstractmethod
    async def do_get_conversation(self, conversation_id: str) -> Conversation:
        """Point read of a conversation.

        Raises:
            NotFoundError: If the conversation does not exist.
        """
        pass

    @abstractmethod
    async def do_list_conversations(self, user_id: str) -> list[ConversationSummary]:
        """List the conversations of a user, most recently updated first."""
        pass

    @abstractmethod
    async def do_delete_conversation(self, conversation_id: str) -> None:
        """Delete a conversation record."""
        pass

    @abstractmethod
    async def do_update_conversation(
        self,
        conversation_id: str,
        set_fields: dict | None = None,
        append_fields: dict[str, list] | None = None,
    ) -> None:
        """Apply one atomic write to an existing conversation and touch updatedAt.

        Args:
            conversation_id (str): The conversation to update.
            set_fields (dict | None): Field path → value to overwrite.
            append_fields (dict[str, list] | None): Field path → values appended
                with array-union semantics (e.g. FIELD_MESSAGES → [message dicts]).

        Raises:
            NotFoundError: If the conversation does not exist.
            StorageWriteFailedError: If the backend rejects the write.
        """
        pass

    async def do_append_messages(self, conversation_id: str, messages: list[Message], set_fields: dict | None = None) -> None:
        """Append messages (and optionally set fields) in a single write."""
        await self.do_update_conversation(
            conversation_id,
            set_fields=set_fields,
            append_fields={FIELD_MESSAGES: [message.to_store() for message in messages]},
        )

    ##########################################
    ########### GLOBAL DOCUMENTS #############
    ##########################################

    @abstractmethod
    async def do_add_global_document(self, record: DocumentRecord) -> None:
        """Add a record to the flat global document pool."""
        pass

    @abstractmethod
    async def do_list_global_documents(self) -> list[DocumentRecord]:
        """Return every record of the global document pool."""
        pass

    ##########################################
    ############## CHUNK TEXTS ###############
    ##########################################

    @abstractmethod
    async def do_put_chunks(self, entries: list[VectorEntry]) -> None:
        """Store chunk texts keyed by vector id (overwrites existing keys)."""
        pass

    @abstractmethod
    async def do_fetch_chunks(self, vector_ids: list[str]) -> dict[str, str]:
        """Resolve vector ids to chunk texts. Unknown ids are absent from the result."""
        pass
