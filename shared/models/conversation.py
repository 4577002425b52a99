"""Pydantic models for conversations and their documents.

Hierarchy:
  Message              one immutable entry of a conversation transcript.
  DocumentRecord       metadata of one ingested file (private bucket or global pool).
  Conversation         the chat session aggregate, including context buckets,
                       the active bucket and the elevated-mode flag.
  ConversationSummary  list view of a conversation.

Field names are stored camelCased (``userId``, ``activeContext`` ...) so the
persisted records stay readable by the existing web frontend.
"""

import re
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shared.exceptions import ConfigurationError

DEFAULT_CONTEXT = "miscellaneous"
BUCKET_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_bucket_names(names: list[str]) -> list[str]:
    """Check configured context bucket names and make sure the default bucket is present.

    Bucket names become field paths of the stored record, so only simple
    identifiers are accepted.

    Raises:
        ConfigurationError: If a name is not a simple identifier.
    """
    for name in names:
        if not BUCKET_NAME_PATTERN.match(name):
            raise ConfigurationError(f"Invalid context bucket name '{name}'.")
    return names if DEFAULT_CONTEXT in names else [DEFAULT_CONTEXT, *names]


class StoredModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_store(self) -> dict:
        """Dump the model with camelCase keys, keeping datetimes as objects."""
        return self.model_dump(by_alias=True, exclude_none=True)


class MessageSender(str, Enum):
    USER = "user"
    AI = "ai"
    BOT = "bot"


class Message(StoredModel):
    sender: MessageSender
    text: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DocumentRecord(StoredModel):
    """Metadata for one ingested file.

    ``uploaded_by`` is only set for records in the global pool.
    """

    document_id: str
    original_name: str
    storage_path: str
    chunk_count: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    uploaded_by: str | None = None


class Conversation(StoredModel):
    id: str
    user_id: str
    title: str
    messages: list[Message] = []
    contexts: dict[str, list[DocumentRecord]] = {}
    active_context: str = DEFAULT_CONTEXT
    superuser_mode: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def get_active_document_ids(self) -> list[str]:
        """Return the document ids of the currently active context bucket."""
        return [doc.document_id for doc in self.contexts.get(self.active_context, [])]

    def to_response(self) -> dict:
        """JSON-ready representation for API responses (``_id`` kept for the frontend)."""
        data = self.model_dump(by_alias=True, mode="json")
        data["_id"] = data.pop("id")
        return data


class ConversationSummary(StoredModel):
    id: str
    title: str
    updated_at: datetime | None = None

    def to_response(self) -> dict:
        data = self.model_dump(by_alias=True, mode="json")
        data["_id"] = data.pop("id")
        return data
