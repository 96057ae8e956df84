"""
Block Builder
=============
Folds a stream of classified lines into an ordered, flat sequence of
block nodes (headings, lists, paragraphs).

At most one container is open at a time:

    NONE_OPEN ──ParagraphText──▶ PARAGRAPH_OPEN ──ListItem──▶ LIST_OPEN
        ▲                              │                          │
        └────────── Blank / Heading / end of input ───────────────┘
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence

from .models import (
    BlockNode,
    HeadingBlock,
    Line,
    LineRole,
    ListBlock,
    ParagraphBlock,
    RoleKind,
)

logger = logging.getLogger(__name__)


class BuilderState(Enum):
    """Which container, if any, is accumulating lines."""
    NONE_OPEN = "NONE_OPEN"
    PARAGRAPH_OPEN = "PARAGRAPH_OPEN"
    LIST_OPEN = "LIST_OPEN"


class BlockBuilder:
    """
    Finite state machine that transforms classified lines into BlockNodes.

    Every non-blank line ends up in exactly one emitted node; blank lines
    only close containers. Empty containers are never emitted.
    """

    def __init__(self):
        self.state = BuilderState.NONE_OPEN
        self.buffer: list[str] = []
        self.blocks: list[BlockNode] = []

    def reset(self):
        """Reset the state machine for a fresh build."""
        self.state = BuilderState.NONE_OPEN
        self.buffer = []
        self.blocks = []

    def build(self, classified: Sequence[tuple[Line, LineRole]]) -> list[BlockNode]:
        """Build the block tree from (line, role) pairs in source order."""
        self.reset()

        for line, role in classified:
            self._transition(line, role)

        self._close()

        logger.debug(
            f"Built {len(self.blocks)} blocks from {len(classified)} lines"
        )
        return self.blocks

    def _transition(self, line: Line, role: LineRole):
        """Apply one classified line to the state machine."""

        if role.kind == RoleKind.BLANK:
            self._close()

        elif role.kind == RoleKind.HEADING:
            self._close()
            self.blocks.append(HeadingBlock(level=role.level, text=role.content))

        elif role.kind == RoleKind.LIST_ITEM:
            self._open(BuilderState.LIST_OPEN)
            self.buffer.append(role.content)

        elif role.kind == RoleKind.PARAGRAPH_TEXT:
            self._open(BuilderState.PARAGRAPH_OPEN)
            self.buffer.append(role.content)

        else:
            raise ValueError(f"Unknown role kind on line {line.index}: {role.kind}")

    def _open(self, state: BuilderState):
        """Make `state` the open container, closing any other one first."""
        if self.state == state:
            return
        self._close()
        self.state = state

    def _close(self):
        """Flush the open container (if any, and if non-empty) into a node."""
        if self.state == BuilderState.PARAGRAPH_OPEN and self.buffer:
            self.blocks.append(ParagraphBlock(text=" ".join(self.buffer)))
        elif self.state == BuilderState.LIST_OPEN and self.buffer:
            self.blocks.append(ListBlock(items=list(self.buffer)))

        self.state = BuilderState.NONE_OPEN
        self.buffer = []


def build(classified: Sequence[tuple[Line, LineRole]]) -> list[BlockNode]:
    """Build blocks with a fresh BlockBuilder."""
    return BlockBuilder().build(classified)
