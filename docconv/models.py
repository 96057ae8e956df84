"""
Data Models
===========
Pydantic models for text-to-structure reconstruction.
All models are serializable to JSON for HTTP responses.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ─── Enums ────────────────────────────────────────────────────────────────────


class RoleKind(str, Enum):
    """Role assigned to a single line by the classifier."""
    HEADING = "heading"
    LIST_ITEM = "list_item"
    PARAGRAPH_TEXT = "paragraph_text"
    BLANK = "blank"


# ─── Line Models ──────────────────────────────────────────────────────────────


class Line(BaseModel):
    """
    One line of source text, trimmed, with its position in source order.
    Immutable once ingested.
    """
    model_config = ConfigDict(frozen=True)

    raw: str
    text: str
    index: int = Field(ge=0, description="0-based position in the source")

    @classmethod
    def from_raw(cls, raw: str, index: int) -> "Line":
        return cls(raw=raw, text=raw.strip(), index=index)

    @computed_field
    @property
    def is_blank(self) -> bool:
        return not self.text


class LineRole(BaseModel):
    """
    Classification of a Line.

    `content` is the text that ends up in the block tree: the marker-stripped
    item text for list items, the trimmed line otherwise.
    """
    model_config = ConfigDict(frozen=True)

    kind: RoleKind
    level: Optional[int] = Field(default=None, ge=1, le=3)
    content: str = ""

    @classmethod
    def heading(cls, level: int, text: str) -> "LineRole":
        return cls(kind=RoleKind.HEADING, level=level, content=text)

    @classmethod
    def list_item(cls, text: str) -> "LineRole":
        return cls(kind=RoleKind.LIST_ITEM, content=text)

    @classmethod
    def paragraph(cls, text: str) -> "LineRole":
        return cls(kind=RoleKind.PARAGRAPH_TEXT, content=text)

    @classmethod
    def blank(cls) -> "LineRole":
        return cls(kind=RoleKind.BLANK)


# ─── Block Models ─────────────────────────────────────────────────────────────


class HeadingBlock(BaseModel):
    """A standalone heading."""
    type: Literal["heading"] = "heading"
    level: int = Field(ge=1, le=3)
    text: str


class ListBlock(BaseModel):
    """An unordered list of consecutive list items."""
    type: Literal["list"] = "list"
    items: list[str] = Field(min_length=1)


class ParagraphBlock(BaseModel):
    """Consecutive paragraph lines joined with single spaces."""
    type: Literal["paragraph"] = "paragraph"
    text: str


BlockNode = Annotated[
    Union[HeadingBlock, ListBlock, ParagraphBlock],
    Field(discriminator="type"),
]


# ─── Report / Result Models ───────────────────────────────────────────────────


class StructureReport(BaseModel):
    """Per-conversion statistics and warnings."""
    total_lines: int = 0
    blank_lines: int = 0
    heading_lines: int = 0
    list_item_lines: int = 0
    paragraph_lines: int = 0
    block_count: int = 0
    heading_levels: dict[int, int] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def is_empty(self) -> bool:
        return self.block_count == 0


class StructureResult(BaseModel):
    """
    Complete output of one reconstruction run.
    This is the JSON structure returned by the HTTP service.
    """
    blocks: list[BlockNode] = Field(default_factory=list)
    html: str
    report: StructureReport = Field(default_factory=StructureReport)
    engine_version: str = "1.0.0"
    converted_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class ExtractedText(BaseModel):
    """Plain text pulled out of a PDF by the extractor."""
    text: str = ""
    page_count: int = Field(default=0, ge=0)
    source_name: str = ""

    @computed_field
    @property
    def char_count(self) -> int:
        return len(self.text)
