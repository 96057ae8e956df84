"""
Markup Sources
==============
Inputs that already carry structure: HTML and Markdown.

    html_to_blocks   HTML → block tree (for DOCX assembly)
    markdown_to_html Markdown → HTML fragment

HTML is read with BeautifulSoup. Block elements map onto the same
HeadingBlock / ListBlock / ParagraphBlock nodes the structure engine builds,
so the DOCX writer handles both sources alike.
"""

from __future__ import annotations

import logging

import markdown
from bs4 import BeautifulSoup

from .models import BlockNode, HeadingBlock, ListBlock, ParagraphBlock

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
LIST_TAGS = ["ul", "ol"]
TEXT_TAGS = ["p", "pre", "blockquote"]

# Emitted as one block each; "div" only when it holds no other block
BLOCK_TAGS = HEADING_TAGS + LIST_TAGS + TEXT_TAGS + ["div"]

# Elements whose descendants are rendered as part of the element itself
CONTAINER_TAGS = HEADING_TAGS + LIST_TAGS + TEXT_TAGS + ["li"]

MARKDOWN_EXTENSIONS = ["extra", "sane_lists"]


def html_to_blocks(html: str) -> list[BlockNode]:
    """
    Map an HTML document or fragment onto block nodes, in document order.

    h4-h6 become level-3 headings. A <div> without block children is a
    paragraph. Text outside any block element is dropped, unless the
    document has no block elements at all; then each text line becomes
    a paragraph.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "head"]):
        tag.decompose()

    blocks: list[BlockNode] = []
    for elem in soup.find_all(BLOCK_TAGS):
        if elem.find_parent(CONTAINER_TAGS) is not None:
            continue

        if elem.name in HEADING_TAGS:
            text = elem.get_text(" ", strip=True)
            if text:
                blocks.append(HeadingBlock(level=min(int(elem.name[1]), 3), text=text))

        elif elem.name in LIST_TAGS:
            items = [
                li.get_text(" ", strip=True)
                for li in elem.find_all("li", recursive=False)
            ]
            items = [item for item in items if item]
            if items:
                blocks.append(ListBlock(items=items))

        elif elem.name == "div":
            if elem.find(BLOCK_TAGS) is not None:
                continue
            text = elem.get_text(" ", strip=True)
            if text:
                blocks.append(ParagraphBlock(text=text))

        else:
            text = elem.get_text(" ", strip=True)
            if text:
                blocks.append(ParagraphBlock(text=text))

    if not blocks:
        blocks = [
            ParagraphBlock(text=line.strip())
            for line in soup.get_text("\n").splitlines()
            if line.strip()
        ]

    logger.debug(f"Mapped HTML onto {len(blocks)} blocks")
    return blocks


def markdown_to_html(source: str) -> str:
    """Render Markdown to an HTML fragment (tables, fenced code, footnotes)."""
    return markdown.markdown(source, extensions=MARKDOWN_EXTENSIONS)
