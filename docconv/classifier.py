"""
Line Classifier
===============
Assigns a role (heading, list item, paragraph text, blank) to each line of
plain extracted text, using only the line itself and the next non-blank line
after it.

Precedence, first match wins:
    1. Blank
    2. Heading   (density heuristic OR structural pattern, length-gated)
    3. List item (bullet glyph, "1.", "a." markers)
    4. Paragraph text
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence

from .models import Line, LineRole

logger = logging.getLogger(__name__)

DEFAULT_HEADING_LEVEL = 3


# ─── Heading Rules ────────────────────────────────────────────────────────────


class HeadingRule(NamedTuple):
    """A structural heading pattern and the level it assigns."""
    name: str
    pattern: re.Pattern
    level: int


# Evaluated top to bottom; the first matching rule decides the level.
HEADING_RULES: tuple[HeadingRule, ...] = (
    # "CHAPTER OVERVIEW"
    HeadingRule("all_caps", re.compile(r"^[A-Z][A-Z\s]+$"), 1),
    # "Chapter 3", "CHAPTER 12: Results"
    HeadingRule("chapter", re.compile(r"^Chapter\s+\d+", re.IGNORECASE), 1),
    # "1. Introduction"
    HeadingRule("numbered", re.compile(r"^\d+\.\s+[A-Z]"), 2),
    # "IV. Methods"
    HeadingRule("roman", re.compile(r"^[IVX]+\.\s+[A-Z]"), 2),
    # "Section 2"
    HeadingRule("section", re.compile(r"^Section\s+\d+", re.IGNORECASE), 2),
    # "Related Work"
    HeadingRule("title_case", re.compile(r"^[A-Z][a-z]+(\s+[A-Z][a-z]+)*$"), 3),
)


# ─── List Markers ─────────────────────────────────────────────────────────────

BULLET_GLYPHS = "•◦▪‣–\\-*"

LIST_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(rf"^[{BULLET_GLYPHS}]\s+"),  # "• item", "- item", "* item"
    re.compile(r"^\d+\.\s+"),  # "1. item"
    re.compile(r"^[a-z]\.\s+"),  # "a. item"
)


@dataclass
class ClassifierConfig:
    """Tunables for heading detection."""

    # A line followed by one more than `density_factor` times its length
    # reads as a title over body text.
    density_factor: float = 2.0

    # Longer lines are never headings.
    max_heading_length: int = 100


class LineClassifier:
    """
    Stateless line classifier.

    Holds only configuration and compiled pattern tables, so a single
    instance can be shared between threads.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        heading_rules: Sequence[HeadingRule] = HEADING_RULES,
        list_patterns: Sequence[re.Pattern] = LIST_PATTERNS,
    ):
        self.config = config or ClassifierConfig()
        self.heading_rules = tuple(heading_rules)
        self.list_patterns = tuple(list_patterns)

    def classify(self, line: Line, lines: Sequence[Line], index: int) -> LineRole:
        """
        Classify `line`, which sits at `lines[index]`.

        Args:
            line: The line to classify.
            lines: The full ordered line sequence (for lookahead).
            index: Position of `line` within `lines`.

        Returns:
            The LineRole for this line.
        """
        text = line.text

        if not text:
            return LineRole.blank()

        level = self.heading_level(text, self._next_line(lines, index))
        if level is not None:
            logger.debug(f"Line {line.index}: heading h{level}: {text[:40]!r}")
            return LineRole.heading(level, text)

        item = self.list_item_text(text)
        if item is not None:
            return LineRole.list_item(item)

        return LineRole.paragraph(text)

    def classify_all(self, lines: Sequence[Line]) -> list[tuple[Line, LineRole]]:
        """Classify every line in order."""
        return [
            (line, self.classify(line, lines, i))
            for i, line in enumerate(lines)
        ]

    # ─── Heading Detection ────────────────────────────────────────────────

    def heading_level(self, text: str, next_line: Optional[Line] = None) -> Optional[int]:
        """
        Return the heading level for `text`, or None if it is not a heading.

        The length gate is checked before anything else.
        """
        if len(text) > self.config.max_heading_length:
            return None

        rule = self.match_heading_rule(text)
        if rule is not None:
            return rule.level

        if self._is_dense_follower(text, next_line):
            return DEFAULT_HEADING_LEVEL

        return None

    def match_heading_rule(self, text: str) -> Optional[HeadingRule]:
        """First structural rule matching `text`, in table order."""
        for rule in self.heading_rules:
            if rule.pattern.search(text):
                return rule
        return None

    def _is_dense_follower(self, text: str, next_line: Optional[Line]) -> bool:
        if next_line is None or next_line.is_blank:
            return False
        return len(next_line.text) > len(text) * self.config.density_factor

    @staticmethod
    def _next_line(lines: Sequence[Line], index: int) -> Optional[Line]:
        """First non-blank line after `lines[index]`; blank separators are skipped."""
        for i in range(index + 1, len(lines)):
            if not lines[i].is_blank:
                return lines[i]
        return None

    # ─── List Detection ───────────────────────────────────────────────────

    def list_item_text(self, text: str) -> Optional[str]:
        """Item text with its marker stripped, or None if not a list item."""
        for pattern in self.list_patterns:
            match = pattern.match(text)
            if match:
                return text[match.end():].strip()
        return None


_default_classifier = LineClassifier()


def classify(line: Line, lines: Sequence[Line], index: int) -> LineRole:
    """Classify one line with the default configuration."""
    return _default_classifier.classify(line, lines, index)
