"""
Markup Emitter
==============
Serializes a block tree into HTML.

    HeadingBlock   → <hN>text</hN>
    ParagraphBlock → <p>text</p>
    ListBlock      → <ul><li>item</li>...</ul>

Only leaf text is escaped. Also provides the full-document shell used by the
HTTP service and a plain-text rendering of the tree.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from .models import BlockNode, HeadingBlock, ListBlock, ParagraphBlock

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_MESSAGE = "No content could be extracted."

_ESCAPE_TABLE = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#039;",
})


def escape_html(text: str) -> str:
    """Replace &, <, >, " and ' with character references."""
    return text.translate(_ESCAPE_TABLE)


class MarkupEmitter:
    """Deterministic HTML serializer for block trees."""

    def __init__(self, fallback_message: str = DEFAULT_FALLBACK_MESSAGE):
        self.fallback_message = fallback_message

    def emit(self, nodes: Sequence[BlockNode]) -> str:
        """
        Serialize `nodes` to an HTML fragment, one block per line.

        An empty sequence yields a single fallback paragraph.
        """
        if not nodes:
            return f"<p>{escape_html(self.fallback_message)}</p>"
        return "\n".join(self._emit_node(node) for node in nodes)

    def _emit_node(self, node: BlockNode) -> str:
        if isinstance(node, HeadingBlock):
            return f"<h{node.level}>{escape_html(node.text)}</h{node.level}>"
        if isinstance(node, ParagraphBlock):
            return f"<p>{escape_html(node.text)}</p>"
        if isinstance(node, ListBlock):
            items = "".join(f"<li>{escape_html(item)}</li>" for item in node.items)
            return f"<ul>{items}</ul>"
        raise TypeError(f"Unsupported block node: {type(node).__name__}")


def emit(nodes: Sequence[BlockNode]) -> str:
    """Serialize with the default fallback message."""
    return MarkupEmitter().emit(nodes)


# ─── Plain Text ───────────────────────────────────────────────────────────────


def to_plain_text(nodes: Sequence[BlockNode]) -> str:
    """
    Render a block tree back to line-oriented text.

    A heading is followed directly by the next block; every other block
    is followed by a blank line. List items get a "• " marker.
    """
    parts: list[str] = []
    for i, node in enumerate(nodes):
        if isinstance(node, HeadingBlock):
            parts.append(node.text)
        elif isinstance(node, ParagraphBlock):
            parts.append(node.text)
        elif isinstance(node, ListBlock):
            parts.extend(f"• {item}" for item in node.items)
        else:
            raise TypeError(f"Unsupported block node: {type(node).__name__}")

        if i < len(nodes) - 1 and not isinstance(node, HeadingBlock):
            parts.append("")
    return "\n".join(parts)


# ─── Document Shell ───────────────────────────────────────────────────────────

DOCUMENT_STYLE = """
        body {
            font-family: Arial, sans-serif;
            line-height: 1.6;
            margin: 0 auto;
            max-width: 800px;
            padding: 40px 20px;
            color: #333;
            background: #fff;
        }
        h1, h2, h3 { color: #2c3e50; margin-top: 1.5em; margin-bottom: 0.5em; }
        h1 { font-size: 2.2em; border-bottom: 2px solid #3498db; padding-bottom: 10px; }
        h2 { font-size: 1.8em; border-bottom: 1px solid #bdc3c7; padding-bottom: 5px; }
        h3 { font-size: 1.4em; }
        p { margin-bottom: 1em; text-align: justify; }
        .conversion-info {
            background: #e8f5e8;
            padding: 10px;
            border-radius: 5px;
            margin-bottom: 2em;
            border-left: 4px solid #27ae60;
            font-size: 0.9em;
        }
        .metadata {
            background: #f8f9fa;
            padding: 15px;
            border-radius: 5px;
            margin-top: 2em;
            font-size: 0.9em;
            color: #666;
        }"""


def render_document(
    fragment: str,
    title: str,
    source_name: Optional[str] = None,
    page_count: Optional[int] = None,
    char_count: Optional[int] = None,
) -> str:
    """
    Wrap an HTML fragment in a standalone HTML document.

    Args:
        fragment: Already-escaped body markup (output of `emit`).
        title: Document title (escaped here).
        source_name: Original file name, shown in the info banner.
        page_count: Source page count, if known.
        char_count: Number of extracted characters, if known.
    """
    now = datetime.now()
    safe_title = escape_html(title)

    info_rows = []
    if source_name:
        info_rows.append(f"<strong>Converted from:</strong> {escape_html(source_name)}")
    if page_count is not None:
        info_rows.append(f"<strong>Pages:</strong> {page_count}")
    info_rows.append(f"<strong>Conversion date:</strong> {now:%Y-%m-%d}")

    meta_rows = []
    if source_name:
        meta_rows.append(f"File: {escape_html(source_name)}")
    if page_count is not None:
        meta_rows.append(f"Pages: {page_count}")
    if char_count is not None:
        meta_rows.append(f"Text extracted: {char_count} characters")
    meta_rows.append(f"Converted on: {now:%Y-%m-%d %H:%M:%S}")

    info_html = "<br>".join(info_rows)
    meta_html = "<br>".join(meta_rows)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{safe_title}</title>
    <style>{DOCUMENT_STYLE}
    </style>
</head>
<body>
    <div class="conversion-info">
        {info_html}
    </div>

    <div class="content">
{fragment}
    </div>

    <div class="metadata">
        <strong>Source info:</strong><br>
        {meta_html}
    </div>
</body>
</html>
"""
