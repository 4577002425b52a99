"""Document ingestion service.

Stores each uploaded file in blob storage, extracts and chunks its text,
embeds the chunks, upserts them into the vector index and records the
document on the conversation (or in the global pool in superuser mode).
Files are processed one after another; a failing file is reported and the
remaining files continue.
"""

import os
import time

from shared.clients.blob.BlobClientInterface import BlobClientInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorEntry import VectorEntry
from shared.clients.store.StoreClientInterface import (
    FIELD_ACTIVE_CONTEXT,
    FIELD_MESSAGES,
    StoreClientInterface,
)
from shared.exceptions import ChatBackendError, ConfigurationError, InvalidInputError
from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import (
    DEFAULT_CONTEXT,
    Conversation,
    DocumentRecord,
    Message,
    MessageSender,
    validate_bucket_names,
)
from shared.models.ingestion import FileIngestionResult, IngestionResult, UploadedFile
from shared.prompts import INGESTED_GLOBAL_MESSAGE, INGESTED_MESSAGE
from services.document_ingestion.TextExtractor import TextExtractor

CHUNK_SIZE = 1000       # characters per text chunk
CHUNK_OVERLAP = 200     # character overlap between consecutive chunks


def validate_chunk_params(chunk_size: int, overlap: int) -> None:
    """
    Raises:
        ConfigurationError: If chunk_size <= 0, overlap < 0 or overlap >= chunk_size.
    """
    if chunk_size <= 0 or overlap < 0 or overlap >= chunk_size:
        raise ConfigurationError(
            f"Invalid chunking parameters: chunk_size={chunk_size}, overlap={overlap} "
            "(need chunk_size > 0 and 0 <= overlap < chunk_size)."
        )


def split_text(text: str, chunk_size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> list[str]:
    """Split text into fixed-size fragments that overlap by `overlap` characters.

    Fragments start every chunk_size - overlap characters; the last one may be
    shorter. Dropping the first `overlap` characters of every fragment but the
    first and concatenating gives back the original text.

    Args:
        text (str): The text to split.
        chunk_size (int): Maximum fragment length.
        overlap (int): Characters shared by consecutive fragments.

    Returns:
        list[str]: Ordered fragments; empty for empty text.

    Raises:
        ConfigurationError: If the parameters are invalid.
    """
    validate_chunk_params(chunk_size, overlap)
    step = chunk_size - overlap
    return [text[offset: offset + chunk_size] for offset in range(0, len(text), step)]


def make_document_id(conversation_id: str, millis: int, file_index: int) -> str:
    return f"doc_{conversation_id}_{millis}_{file_index}"


class IngestionService:
    """Runs the per-file ingestion pipeline for a conversation."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        blob_client: BlobClientInterface,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        text_extractor: TextExtractor,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store_client
        self._blob = blob_client
        self._embed = embed_client
        self._rag = rag_client
        self._extractor = text_extractor

        self._chunk_size = int(helper_config.get_number_val("CHAT_CHUNK_SIZE", default=CHUNK_SIZE))
        self._chunk_overlap = int(helper_config.get_number_val("CHAT_CHUNK_OVERLAP", default=CHUNK_OVERLAP))
        validate_chunk_params(self._chunk_size, self._chunk_overlap)
        self._buckets = validate_bucket_names(
            helper_config.get_list_val("CHAT_CONTEXT_BUCKETS", default=[DEFAULT_CONTEXT])
        )

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_ingest(
        self,
        conversation_id: str,
        user_id: str,
        bucket: str,
        files: list[UploadedFile],
    ) -> IngestionResult:
        """Ingest uploaded files into a conversation.

        Args:
            conversation_id (str): Target conversation.
            user_id (str): Uploading user; prefixes the blob keys and tags global records.
            bucket (str): Context bucket receiving the records in private mode.
            files (list[UploadedFile]): The uploaded files, processed in order.

        Returns:
            IngestionResult: The conversation re-read after all files, plus one result per file.

        Raises:
            ConfigurationError: If the bucket is not a configured context bucket.
            InvalidInputError: If no files were given.
            NotFoundError: If the conversation does not exist.
        """
        bucket = bucket or DEFAULT_CONTEXT
        if bucket not in self._buckets:
            raise ConfigurationError(f"Unknown context bucket '{bucket}'.")
        if not files:
            raise InvalidInputError("No files uploaded.")

        conversation = await self._store.do_get_conversation(conversation_id)
        elevated = conversation.superuser_mode
        self.logging.info(
            "Ingesting %d file(s) into conversation %s (%s).",
            len(files), conversation_id, "global pool" if elevated else f"bucket '{bucket}'",
        )

        results: list[FileIngestionResult] = []
        for file_index, file in enumerate(files):
            results.append(await self._ingest_file(conversation, user_id, bucket, elevated, file_index, file))

        succeeded = sum(1 for r in results if r.success)
        self.logging.info(
            "Ingestion complete for conversation %s: %d succeeded, %d failed.",
            conversation_id, succeeded, len(results) - succeeded,
        )
        conversation = await self._store.do_get_conversation(conversation_id)
        return IngestionResult(conversation=conversation, files=results)

    ##########################################
    ############# FILE PIPELINE ##############
    ##########################################

    async def _ingest_file(
        self,
        conversation: Conversation,
        user_id: str,
        bucket: str,
        elevated: bool,
        file_index: int,
        file: UploadedFile,
    ) -> FileIngestionResult:
        """Run all steps for one file. Errors become a failed result instead of propagating."""
        filename = os.path.basename(file.filename) or f"upload-{file_index}"
        millis = int(time.time() * 1000)
        document_id = make_document_id(conversation.id, millis, file_index)

        try:
            storage_path = await self._blob.do_put(
                f"{user_id}/{conversation.id}/{millis}-{filename}", file.data, file.content_type
            )

            text = await self._extractor.extract(file.data, file.content_type, filename)
            chunks = split_text(text, self._chunk_size, self._chunk_overlap)
            vectors = await self._embed.do_embed_texts(chunks)
            entries = [
                VectorEntry.for_chunk(document_id, chunk_index, chunk, vector)
                for chunk_index, (chunk, vector) in enumerate(zip(chunks, vectors))
            ]
            await self._rag.do_upsert_entries(entries)

            record = DocumentRecord(
                document_id=document_id,
                original_name=filename,
                storage_path=storage_path,
                chunk_count=len(entries),
                uploaded_by=user_id if elevated else None,
            )
            await self._record_document(conversation.id, bucket, elevated, record)
        except ChatBackendError as exc:
            self.logging.error("Ingesting '%s' into conversation %s failed: %s", filename, conversation.id, exc.message)
            return FileIngestionResult(
                filename=filename,
                success=False,
                error_code=exc.error_code,
                error=exc.message,
            )

        self.logging.info("Ingested '%s' as %s: %d chunks.", filename, document_id, len(entries), color="green")
        return FileIngestionResult(
            filename=filename,
            success=True,
            document_id=document_id,
            chunk_count=len(entries),
        )

    async def _record_document(self, conversation_id: str, bucket: str, elevated: bool, record: DocumentRecord) -> None:
        """Store the record and acknowledge it with a bot message, touching updatedAt."""
        if elevated:
            await self._store.do_add_global_document(record)
            acknowledgement = Message(
                sender=MessageSender.BOT,
                text=INGESTED_GLOBAL_MESSAGE.format(name=record.original_name),
            )
            await self._store.do_append_messages(conversation_id, [acknowledgement])
            return

        acknowledgement = Message(
            sender=MessageSender.BOT,
            text=INGESTED_MESSAGE.format(name=record.original_name, bucket=bucket),
        )
        await self._store.do_update_conversation(
            conversation_id,
            set_fields={FIELD_ACTIVE_CONTEXT: bucket},
            append_fields={
                self._store.get_context_field(bucket): [record.to_store()],
                FIELD_MESSAGES: [acknowledgement.to_store()],
            },
        )
