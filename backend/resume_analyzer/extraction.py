"""
Resume text extraction for uploaded files (PDF, DOCX, plain text).
"""

import io
import logging
from pathlib import Path
from typing import Optional

import PyPDF2
from docx import Document

logger = logging.getLogger(__name__)

PDF_TYPE = "application/pdf"
DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_SUFFIXES = {".txt", ".md"}


class ExtractionError(Exception):
    """The file could not be parsed."""


class UnsupportedFileType(ExtractionError):
    """The file is neither PDF, DOCX nor plain text."""


def extract_text_from_pdf(file_content: bytes) -> str:
    """Extract text from PDF file using PyPDF2"""
    try:
        pdf_reader = PyPDF2.PdfReader(io.BytesIO(file_content))
        text = ""
        for page in pdf_reader.pages:
            text += (page.extract_text() or "") + "\n"
        return text
    except Exception as e:
        logger.error(f"PDF extraction error: {e}")
        raise ExtractionError(f"Failed to read PDF: {e}") from e


def extract_text_from_docx(file_content: bytes) -> str:
    """Extract text from DOCX file"""
    try:
        doc = Document(io.BytesIO(file_content))
        text = ""
        for paragraph in doc.paragraphs:
            text += paragraph.text + "\n"
        return text
    except Exception as e:
        logger.error(f"DOCX extraction error: {e}")
        raise ExtractionError(f"Failed to read DOCX: {e}") from e


def extract_text(filename: str, content_type: Optional[str], file_content: bytes) -> str:
    """Dispatch on content type, falling back to the file extension."""
    suffix = Path(filename or "").suffix.lower()

    if content_type == PDF_TYPE or suffix == ".pdf":
        return extract_text_from_pdf(file_content)
    if content_type == DOCX_TYPE or suffix == ".docx":
        return extract_text_from_docx(file_content)
    if (content_type or "").startswith("text/") or suffix in TEXT_SUFFIXES:
        return file_content.decode("utf-8", errors="replace")

    raise UnsupportedFileType(f"Unsupported file type: {content_type or suffix or 'unknown'}")


def title_from_filename(filename: str) -> str:
    """Resume title is the file name without its extension."""
    return Path(filename or "").stem or "Resume"
