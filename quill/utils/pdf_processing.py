"""
PDF processing utilities.

Helper functions:
    is_pdf: Magic-byte check on compiler output.
    page_count: Quick page count without full extraction.
    extract_text: Plain text of every page, for previews and checks.
"""

import io
from pathlib import Path
from typing import Optional, Union

import pdfplumber
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

PDF_MAGIC = b"%PDF"

PdfSource = Union[Path, bytes]


def _as_stream(pdf: PdfSource):
    return io.BytesIO(pdf) if isinstance(pdf, bytes) else open(pdf, "rb")


def is_pdf(data: Optional[bytes]) -> bool:
    """True if data starts with the PDF file magic."""
    return bool(data) and data.startswith(PDF_MAGIC)


def page_count(pdf: PdfSource) -> Optional[int]:
    """Get page count from PDF bytes or path, or None if unreadable."""
    try:
        with _as_stream(pdf) as stream:
            reader = PdfReader(stream)
            return len(reader.pages)
    except (PdfReadError, OSError, ValueError):
        return None


def extract_text(pdf: PdfSource) -> str:
    """Extract text from every page, pages separated by blank lines."""
    with _as_stream(pdf) as stream:
        with pdfplumber.open(stream) as document:
            return "\n\n".join(page.extract_text() or "" for page in document.pages)
