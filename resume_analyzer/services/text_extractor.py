from __future__ import annotations

import logging
from io import BytesIO
from typing import Callable
from zipfile import ZipFile

import defusedxml.ElementTree as ET
from docx import Document
from pypdf import PdfReader

from resume_analyzer.core.config import settings
from resume_analyzer.core.errors import ExtractionError
from resume_analyzer.schemas.upload import UploadedFile
from resume_analyzer.services.input_validator import normalize_mime_type

logger = logging.getLogger(__name__)

UNREADABLE_TEXT = "Unable to extract text from this file format."

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

BinaryTextParser = Callable[[UploadedFile], str]


def placeholder_description(file: UploadedFile) -> str:
    return f"Resume file: {file.file_name}. Professional document uploaded for analysis."


def _extract_pdf_text(content: bytes) -> str:
    reader = PdfReader(BytesIO(content))
    page_chunks: list[str] = []
    for page in reader.pages:
        page_text = page.extract_text() or ""
        if page_text.strip():
            page_chunks.append(page_text)
    return "\n\n".join(page_chunks)


def _extract_docx_text_fallback(content: bytes) -> str:
    with ZipFile(BytesIO(content)) as archive:
        raw = archive.read("word/document.xml")
    root = ET.fromstring(raw)
    paragraphs: list[str] = []
    for paragraph in root.iter():
        if not paragraph.tag.endswith("}p"):
            continue
        texts = [node.text.strip() for node in paragraph.iter() if node.tag.endswith("}t") and node.text and node.text.strip()]
        if texts:
            paragraphs.append(" ".join(texts))
    return "\n".join(paragraphs)


def _extract_docx_text(content: bytes) -> str:
    try:
        doc = Document(BytesIO(content))
        return "\n".join(paragraph.text for paragraph in doc.paragraphs if paragraph.text.strip())
    except Exception:  # noqa: BLE001 - python-docx rejects some valid packages
        logger.debug("docx_parser_fallback", exc_info=True)
        return _extract_docx_text_fallback(content)


def parse_binary_document(file: UploadedFile) -> str:
    """Real text extraction for PDF and DOCX uploads.

    Raises ExtractionError for formats it cannot read (legacy .doc included).
    """
    mime_type = normalize_mime_type(file.mime_type)
    try:
        if mime_type == PDF_MIME:
            return _extract_pdf_text(file.content)
        if mime_type == DOCX_MIME:
            return _extract_docx_text(file.content)
    except Exception as exc:  # noqa: BLE001 - pypdf raises a wide range of errors on damaged files
        raise ExtractionError(f"Unable to read '{file.file_name}'") from exc
    raise ExtractionError(f"No text parser for '{file.mime_type}'")


class TextExtractor:
    """Turns an uploaded document into plain text for the analysis prompt.

    Never raises: unreadable text degrades to UNREADABLE_TEXT and binary
    documents degrade to a short synthetic description, so the caller always
    receives a non-empty string. ``binary_parser`` is the pluggable capability
    for real PDF/Word extraction; without it binary uploads are described,
    not parsed.
    """

    def __init__(self, binary_parser: BinaryTextParser | None = None):
        self._binary_parser = binary_parser

    def extract(self, file: UploadedFile) -> str:
        if normalize_mime_type(file.mime_type) == "text/plain":
            return self._decode_text(file)

        if self._binary_parser is None:
            return placeholder_description(file)

        try:
            text = self._binary_parser(file)
        except ExtractionError as exc:
            logger.warning("binary_extraction_failed file=%s: %s", file.file_name, exc)
            return placeholder_description(file)
        if not text.strip():
            logger.info("binary_extraction_empty file=%s", file.file_name)
            return placeholder_description(file)
        return text

    def _decode_text(self, file: UploadedFile) -> str:
        try:
            text = file.content.decode("utf-8-sig")
        except UnicodeDecodeError:
            logger.warning("text_decode_failed file=%s bytes=%s", file.file_name, file.byte_size)
            return UNREADABLE_TEXT
        return text if text.strip() else UNREADABLE_TEXT


def get_text_extractor() -> TextExtractor:
    if settings.binary_extraction_mode == "parse":
        return TextExtractor(binary_parser=parse_binary_document)
    return TextExtractor()
