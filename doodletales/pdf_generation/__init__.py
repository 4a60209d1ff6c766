"""
PDF export for finished DoodleTales stories, and text extraction from uploaded PDF books.
"""

from .builder import DEFAULT_LAYOUT, PAGE_SIZES, PageLayoutConfig, StorybookPDFBuilder
from .extraction import PdfPage, PdfText, extract_pdf_text, extract_pdf_text_from_path

__all__ = [
    "DEFAULT_LAYOUT",
    "PAGE_SIZES",
    "PageLayoutConfig",
    "PdfPage",
    "PdfText",
    "StorybookPDFBuilder",
    "extract_pdf_text",
    "extract_pdf_text_from_path",
]
