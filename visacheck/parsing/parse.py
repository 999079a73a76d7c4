from __future__ import annotations

import asyncio
import logging
import re
from io import BytesIO
from pathlib import PurePath
from typing import Sequence

from docx import Document
from pypdf import PdfReader

from .models import DocumentUpload, ParsedDocument

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}
OCR_NOT_IMPLEMENTED = "Image file requires OCR for text extraction"

_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E\n\r]")


class DocumentParseError(RuntimeError):
    pass


def count_words(text: str) -> int:
    return len([token for token in (text or "").split() if token])


def _parse_txt(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")


def _parse_pdf(content: bytes) -> str:
    try:
        reader = PdfReader(BytesIO(content))
        page_chunks: list[str] = []
        for page in reader.pages:
            page_text = page.extract_text() or ""
            if page_text.strip():
                page_chunks.append(page_text)
        return "\n\n".join(page_chunks)
    except Exception as exc:
        raise DocumentParseError(f"Failed to parse PDF: {exc}") from exc


def _parse_docx(content: bytes) -> str:
    try:
        document = Document(BytesIO(content))
        paragraphs = [p.text.strip() for p in document.paragraphs if p.text and p.text.strip()]
        return "\n".join(paragraphs)
    except Exception as exc:
        raise DocumentParseError(f"Failed to parse DOCX: {exc}") from exc


def _parse_doc(content: bytes) -> str:
    # Some .doc uploads are really OOXML; otherwise salvage printable text.
    try:
        return _parse_docx(content)
    except DocumentParseError:
        text = content.decode("utf-8", errors="ignore")
        return _NON_PRINTABLE_RE.sub(" ", text)


def extract_document(content: bytes, file_name: str, declared_kind: str) -> ParsedDocument:
    """Extract plain text from one uploaded file.

    Never raises: failures are reported through ``parse_success``/``error``
    so a bad upload cannot abort the evaluation it belongs to.
    """
    extension = PurePath(file_name or "").suffix.lower()
    text = ""
    parse_success = False
    error: str | None = None

    try:
        if extension == ".pdf":
            text = _parse_pdf(content)
            parse_success = True
        elif extension == ".docx":
            text = _parse_docx(content)
            parse_success = True
        elif extension == ".doc":
            text = _parse_doc(content)
            parse_success = True
        elif extension == ".txt":
            text = _parse_txt(content)
            parse_success = True
        elif extension in IMAGE_EXTENSIONS:
            error = OCR_NOT_IMPLEMENTED
        else:
            error = f"Unsupported file type: {extension or '(none)'}"
    except Exception as exc:  # noqa: BLE001 - one bad file must not fail the run
        text = ""
        parse_success = False
        error = str(exc) or "Unknown parsing error"
        logger.warning("document_parse_failed file=%s kind=%s: %s", file_name, declared_kind, error)

    text = text.strip()
    return ParsedDocument(
        file_name=file_name,
        declared_kind=declared_kind,
        extracted_text=text,
        word_count=count_words(text),
        parse_success=parse_success,
        error=error,
    )


async def extract_documents(uploads: Sequence[DocumentUpload]) -> list[ParsedDocument]:
    """Extract several uploads in worker threads; result order matches input order."""
    if not uploads:
        return []
    tasks = [
        asyncio.to_thread(extract_document, upload.content, upload.file_name, upload.declared_kind)
        for upload in uploads
    ]
    parsed = await asyncio.gather(*tasks)
    for doc in parsed:
        logger.info(
            "document_parsed file=%s kind=%s words=%s success=%s",
            doc.file_name,
            doc.declared_kind,
            doc.word_count,
            doc.parse_success,
        )
    return list(parsed)


def combine_document_text(documents: Sequence[ParsedDocument]) -> str:
    return "\n\n".join(
        f"--- {doc.declared_kind.upper()}: {doc.file_name} ---\n{doc.extracted_text}"
        for doc in documents
        if doc.parse_success and doc.extracted_text
    )
