"""
Text Extractor
==============
Extracts plain text from PDF files using PyMuPDF (fitz).

Only text is kept: no fonts, no positions beyond reading order. The output
is the line-oriented input the structure engine expects.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import fitz  # PyMuPDF

from .errors import ExtractionError
from .models import ExtractedText

logger = logging.getLogger(__name__)

PdfSource = Union[str, Path, bytes]


class TextExtractor:
    """
    Handles PDF ingestion and plain-text extraction.

    Text blocks on each page are put in reading order (top to bottom,
    then left to right). Lines inside a block are separated by a newline,
    pages by a blank line.
    """

    def __init__(self, page_range: Optional[tuple[int, int]] = None):
        self.page_range = page_range

    def extract(self, source: PdfSource, source_name: str = "") -> ExtractedText:
        """
        Extract all text from the PDF.

        Args:
            source: Path to the PDF, or its raw bytes.
            source_name: Display name; defaults to the file name for paths.

        Returns:
            ExtractedText with the text and the document page count.

        Raises:
            ExtractionError: If the PDF cannot be opened or read.
        """
        if not source_name and not isinstance(source, bytes):
            source_name = Path(source).name

        doc = self._open(source)
        try:
            if doc.needs_pass:
                raise ExtractionError(f"PDF is password protected: {source_name}")

            total_pages = doc.page_count
            start_page, end_page = 1, total_pages
            if self.page_range:
                start_page = max(1, self.page_range[0])
                end_page = min(total_pages, self.page_range[1])

            logger.info(
                f"Extracting text from {source_name or 'upload'} "
                f"(pages {start_page} to {end_page} of {total_pages})"
            )

            pages: list[str] = []
            for page_idx in range(start_page - 1, end_page):
                pages.append(self._extract_page(doc[page_idx]))

            text = "\n\n".join(pages)
        finally:
            doc.close()

        if not text.strip():
            logger.warning(f"No text layer found in {source_name or 'upload'}")

        return ExtractedText(text=text, page_count=total_pages, source_name=source_name)

    def get_page_count(self, source: PdfSource) -> int:
        """Get total number of pages in the PDF."""
        doc = self._open(source)
        try:
            return doc.page_count
        finally:
            doc.close()

    def _open(self, source: PdfSource) -> fitz.Document:
        try:
            if isinstance(source, bytes):
                return fitz.open(stream=source, filetype="pdf")
            path = Path(source)
            if not path.exists():
                raise ExtractionError(f"PDF not found: {path}")
            return fitz.open(str(path))
        except ExtractionError:
            raise
        except (RuntimeError, ValueError) as e:
            raise ExtractionError(f"Cannot open PDF: {e}") from e

    def _extract_page(self, page: fitz.Page) -> str:
        """Text of one page, blocks in reading order."""
        page_dict = page.get_text("dict")

        text_blocks = [b for b in page_dict.get("blocks", []) if b.get("type") == 0]
        text_blocks.sort(key=lambda b: (b["bbox"][1], b["bbox"][0]))

        lines: list[str] = []
        for block in text_blocks:
            for line in block.get("lines", []):
                line_text = "".join(span["text"] for span in line.get("spans", []))
                if line_text.strip():
                    lines.append(line_text)
        return "\n".join(lines)


def extract_text(source: PdfSource, source_name: str = "") -> ExtractedText:
    """Extract all pages with a default TextExtractor."""
    return TextExtractor().extract(source, source_name=source_name)
