"""
Text extraction from uploaded PDF books, the input side of book conversion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from doodletales.common.errors import DocumentParseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PdfPage:
    page_number: int
    text: str


@dataclass(frozen=True)
class PdfText:
    """
    Text of a PDF, page by page and as one string.

    ``full_text`` joins the non-empty page texts with blank lines.
    """

    pages: tuple[PdfPage, ...]
    full_text: str
    num_pages: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "pages": [{"page_number": page.page_number, "text": page.text} for page in self.pages],
            "full_text": self.full_text,
            "num_pages": self.num_pages,
        }


def extract_pdf_text(data: bytes) -> PdfText:
    """
    Extract the text of every page of the PDF in ``data``.

    Raises
    ------
    ValueError
        If ``data`` is empty or does not look like a PDF.
    DocumentParseError
        If the PDF is encrypted or cannot be read.
    """
    if not data:
        raise ValueError("PDF data must be non-empty bytes.")
    if data.lstrip()[:5] != b"%PDF-":
        raise ValueError("Data does not look like a PDF file.")

    try:
        reader = PdfReader(BytesIO(data))
        if reader.is_encrypted:
            raise DocumentParseError("Encrypted PDFs are not supported.")
        pages = tuple(
            PdfPage(page_number=number, text=(page.extract_text() or "").strip())
            for number, page in enumerate(reader.pages, start=1)
        )
    except (PyPdfError, ValueError, KeyError) as exc:
        raise DocumentParseError(f"Failed to parse PDF: {exc}") from exc

    full_text = "\n\n".join(page.text for page in pages if page.text)
    logger.info("Extracted %d characters from %d PDF page(s)", len(full_text), len(pages))
    return PdfText(pages=pages, full_text=full_text, num_pages=len(pages))


def extract_pdf_text_from_path(path: Path | str) -> PdfText:
    return extract_pdf_text(Path(path).read_bytes())
