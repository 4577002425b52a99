"""Prompt templates and fixed user-facing texts."""

CONTEXT_SEPARATOR = "\n---\n"

CONTEXT_PROMPT = (
    "--- CONTEXT START ---\n"
    "{context}\n"
    "--- CONTEXT END ---\n\n"
    "Using **only** the context provided above, answer the following question. "
    "If the answer is not contained in the context, say that you do not have enough information.\n\n"
    "Question: {question}"
)

PDF_TRANSCRIPTION_PROMPT = (
    "Transcribe all text contained in this PDF document verbatim. "
    "Do not summarise, do not add comments and do not apply any formatting. "
    "Return only the plain text."
)

IMAGE_DESCRIPTION_PROMPT = (
    "Describe this image in detail. Transcribe any text it contains verbatim "
    "and describe charts, tables and diagrams so they can be searched later."
)

IMAGE_PREFIX = 'Description of image "{name}":\n'
SHEET_PREFIX = 'Contents of sheet "{name}":\n'
SHEET_SEPARATOR = "\n\n---\n\n"

FALLBACK_ANSWER = "unable to generate a response"

SUPERUSER_ENABLED_MESSAGE = "Superuser mode ENABLED. New documents are added to the global knowledge base."
SUPERUSER_DISABLED_MESSAGE = "Superuser mode DISABLED."

INGESTED_MESSAGE = "File \"{name}\" processed and added to '{bucket}'."
INGESTED_GLOBAL_MESSAGE = "File \"{name}\" processed and added to the global knowledge base."


def build_context_prompt(question: str, chunks: list[str]) -> str:
    """Wrap retrieved chunks and the user question into the grounded-answer prompt."""
    return CONTEXT_PROMPT.format(context=CONTEXT_SEPARATOR.join(chunks), question=question)
