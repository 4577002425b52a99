"""VectorEntry model: one embedded chunk owned by the vector index."""

import uuid

from pydantic import BaseModel


def make_vector_id(document_id: str, chunk_index: int) -> str:
    """Build a deterministic UUID5 vector ID for a document chunk.

    The same (document_id, chunk_index) pair always maps to the same ID so
    that re-ingesting a chunk overwrites the previous vector instead of
    adding a duplicate.

    Args:
        document_id (str): The DocumentRecord identifier.
        chunk_index (int): Zero-based position of the chunk within the document.

    Returns:
        str: UUID string usable as a Qdrant point ID or Vertex datapoint ID.
    """
    return str(uuid.uuid5(uuid.NAMESPACE_OID, f"{document_id}:{chunk_index}"))


class VectorEntry(BaseModel):
    """A chunk vector plus the metadata needed to filter and resolve it.

    Attributes:
        vector_id:    Deterministic ID, see make_vector_id().
        vector:       The embedding of chunk_text.
        document_id:  Owning DocumentRecord; used as the retrieval scope filter.
        chunk_index:  Zero-based position of the chunk within the document.
        chunk_text:   Raw text of the chunk.
    """

    vector_id: str
    vector: list[float]
    document_id: str
    chunk_index: int
    chunk_text: str

    @classmethod
    def for_chunk(cls, document_id: str, chunk_index: int, chunk_text: str, vector: list[float]) -> "VectorEntry":
        return cls(
            vector_id=make_vector_id(document_id, chunk_index),
            vector=vector,
            document_id=document_id,
            chunk_index=chunk_index,
            chunk_text=chunk_text,
        )


class SearchHit(BaseModel):
    """A single nearest-neighbour match.

    chunk_text is None for backends that only return identifiers; the
    RAG client resolves it from chunk-text storage afterwards.
    """

    vector_id: str
    score: float = 0.0
    document_id: str | None = None
    chunk_text: str | None = None
