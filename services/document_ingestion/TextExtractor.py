"""Text extraction for uploaded files.

Structural parsers handle Word, spreadsheet, PDF and plain-text files. Scanned
PDFs and images are sent to the generative model for transcription or
description. Blocking parsers run in a worker thread.
"""

import asyncio
import io
import os

import pandas as pd
import pypdf
from docx import Document as DocxDocument

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.exceptions import ChatBackendError, ExtractionFailedError, UnsupportedFormatError
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ContentPart
from shared.prompts import (
    IMAGE_DESCRIPTION_PROMPT,
    IMAGE_PREFIX,
    PDF_TRANSCRIPTION_PROMPT,
    SHEET_PREFIX,
    SHEET_SEPARATOR,
)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
SPREADSHEET_MIMES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
}
PDF_MIME = "application/pdf"
IMAGE_MIMES_BY_EXTENSION = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


def _extract_docx(data: bytes) -> str:
    doc = DocxDocument(io.BytesIO(data))
    lines = [paragraph.text for paragraph in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            lines.append("\t".join(cell.text for cell in row.cells))
    return "\n".join(lines)


def _extract_spreadsheet(data: bytes) -> str:
    sheets = pd.read_excel(io.BytesIO(data), sheet_name=None, header=None)
    dumps = []
    for name, frame in sheets.items():
        tsv = frame.fillna("").to_csv(sep="\t", index=False, header=False)
        if not tsv.strip():
            continue
        dumps.append(SHEET_PREFIX.format(name=name) + tsv)
    return SHEET_SEPARATOR.join(dumps)


def _extract_pdf(data: bytes) -> str:
    reader = pypdf.PdfReader(io.BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


class TextExtractor:
    """Turns uploaded bytes into plain text, dispatching on extension or content type."""

    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client

    ##########################################
    ################ CORE ####################
    ##########################################

    async def extract(self, data: bytes, content_type: str, filename: str) -> str:
        """Extract the text content of one file.

        Args:
            data (bytes): Raw file content.
            content_type (str): Declared MIME type.
            filename (str): Original file name; its extension drives the dispatch.

        Returns:
            str: The trimmed, non-empty text.

        Raises:
            UnsupportedFormatError: If neither extension nor content type is supported.
            ExtractionFailedError: If parsing or the model call fails, or no text results.
        """
        extension = os.path.splitext(filename or "")[1].lower()
        content_type = (content_type or "").split(";")[0].strip().lower()

        try:
            text = await self._dispatch(data, content_type, extension, filename)
        except (UnsupportedFormatError, ExtractionFailedError):
            raise
        except ChatBackendError as exc:
            self.logging.error("Model-based extraction failed for '%s': %s", filename, exc)
            raise ExtractionFailedError(f"Could not extract text from '{filename}': {exc.message}") from exc
        except Exception as exc:
            self.logging.error("Parsing '%s' failed: %s", filename, exc)
            raise ExtractionFailedError(f"Could not extract text from '{filename}'.") from exc

        text = (text or "").strip()
        if not text:
            raise ExtractionFailedError(f"No text content could be extracted from '{filename}'.")
        self.logging.debug("Extracted %d characters from '%s'.", len(text), filename)
        return text

    async def _dispatch(self, data: bytes, content_type: str, extension: str, filename: str) -> str:
        if extension == ".docx" or content_type == DOCX_MIME:
            return await asyncio.to_thread(_extract_docx, data)

        if extension in (".xlsx", ".xls") or content_type in SPREADSHEET_MIMES:
            return await asyncio.to_thread(_extract_spreadsheet, data)

        if extension == ".pdf" or content_type == PDF_MIME:
            return await self._extract_pdf_with_fallback(data, filename)

        if extension in IMAGE_MIMES_BY_EXTENSION or content_type.startswith("image/"):
            mime_type = content_type if content_type.startswith("image/") else IMAGE_MIMES_BY_EXTENSION[extension]
            description = await self._llm_client.do_generate([
                ContentPart.from_text(IMAGE_DESCRIPTION_PROMPT),
                ContentPart.from_bytes(data, mime_type),
            ])
            if not description or not description.strip():
                return ""
            return IMAGE_PREFIX.format(name=filename) + description.strip()

        if extension == ".txt" or content_type == "text/plain":
            return data.decode("utf-8")

        raise UnsupportedFormatError(
            f"Unsupported file '{filename}' (extension '{extension or 'none'}', content type '{content_type or 'none'}')."
        )

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _extract_pdf_with_fallback(self, data: bytes, filename: str) -> str:
        """Parse the PDF text layer; transcribe with the model if there is none."""
        try:
            text = await asyncio.to_thread(_extract_pdf, data)
        except Exception as exc:
            self.logging.warning("PDF parser failed for '%s', falling back to model transcription: %s", filename, exc)
            text = ""

        if text.strip():
            return text

        self.logging.info("No text layer in '%s', requesting model transcription.", filename)
        return await self._llm_client.do_generate([
            ContentPart.from_text(PDF_TRANSCRIPTION_PROMPT),
            ContentPart.from_bytes(data, PDF_MIME),
        ]) or ""
