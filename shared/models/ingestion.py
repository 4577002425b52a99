"""Pydantic models for document ingestion requests and results."""

from pydantic import BaseModel

from shared.models.conversation import Conversation


class UploadedFile(BaseModel):
    """A file received from the upload endpoint, held in memory."""

    filename: str
    content_type: str = "application/octet-stream"
    data: bytes


class FileIngestionResult(BaseModel):
    """Outcome of ingesting a single file.

    On failure ``error_code`` carries the stable error code (e.g. "extraction_failed")
    and ``error`` the human-readable reason.
    """

    filename: str
    success: bool
    document_id: str | None = None
    chunk_count: int = 0
    error_code: str | None = None
    error: str | None = None


class IngestionResult(BaseModel):
    conversation: Conversation
    files: list[FileIngestionResult]

    @property
    def failed(self) -> list[FileIngestionResult]:
        return [f for f in self.files if not f.success]
