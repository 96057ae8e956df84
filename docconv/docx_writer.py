"""
DOCX Writer
===========
Assembles a Word document from a reconstructed block tree (python-docx).

    HeadingBlock   → Heading 1..3
    ParagraphBlock → Normal paragraph
    ListBlock      → "List Bullet" paragraphs
"""

from __future__ import annotations

import io
import logging
from typing import Optional, Sequence

from docx import Document
from docx.shared import Inches, Pt

from .emitter import DEFAULT_FALLBACK_MESSAGE
from .models import BlockNode, HeadingBlock, ListBlock, ParagraphBlock

logger = logging.getLogger(__name__)

DOCX_MIME_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)


class DocxWriter:
    """Builds .docx files with 1-inch margins and an 11pt Calibri body."""

    def __init__(
        self,
        font_family: str = "Calibri",
        font_size: int = 11,
        margin_inches: float = 1.0,
        fallback_message: str = DEFAULT_FALLBACK_MESSAGE,
    ):
        self.font_family = font_family
        self.font_size = font_size
        self.margin_inches = margin_inches
        self.fallback_message = fallback_message

    def render(self, blocks: Sequence[BlockNode], title: Optional[str] = None) -> bytes:
        """Return the .docx file contents for `blocks`."""
        doc = Document()
        self._apply_page_setup(doc)

        if title:
            doc.add_heading(title, 0)

        if not blocks:
            doc.add_paragraph(self.fallback_message)

        for block in blocks:
            if isinstance(block, HeadingBlock):
                doc.add_heading(block.text, level=block.level)
            elif isinstance(block, ParagraphBlock):
                doc.add_paragraph(block.text)
            elif isinstance(block, ListBlock):
                for item in block.items:
                    doc.add_paragraph(item, style="List Bullet")
            else:
                raise TypeError(f"Unsupported block node: {type(block).__name__}")

        buffer = io.BytesIO()
        doc.save(buffer)
        data = buffer.getvalue()
        logger.info(f"Built DOCX: {len(blocks)} blocks, {len(data)} bytes")
        return data

    def _apply_page_setup(self, doc):
        for section in doc.sections:
            section.top_margin = Inches(self.margin_inches)
            section.bottom_margin = Inches(self.margin_inches)
            section.left_margin = Inches(self.margin_inches)
            section.right_margin = Inches(self.margin_inches)

        normal = doc.styles["Normal"]
        normal.font.name = self.font_family
        normal.font.size = Pt(self.font_size)
