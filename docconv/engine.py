"""
Structure Engine
================
Main orchestrator that turns unstructured text into a structured document.

Usage:
    engine = StructureEngine(config)
    result = engine.convert(extracted_text)
    # result is a StructureResult with blocks, html and a report

Architecture:
    text → Lines → LineClassifier → (Line, LineRole) → BlockBuilder →
    BlockNodes → MarkupEmitter → HTML
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Union

from . import __version__
from .builder import BlockBuilder
from .classifier import ClassifierConfig, LineClassifier
from .emitter import DEFAULT_FALLBACK_MESSAGE, MarkupEmitter
from .models import BlockNode, Line, LineRole, StructureResult
from .report import StructureReporter

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

TextInput = Union[str, Sequence[str]]


@dataclass
class EngineConfig:
    """Configuration for the structure engine."""

    # Heading heuristics
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)

    # Output
    fallback_message: str = DEFAULT_FALLBACK_MESSAGE

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class StructureEngine:
    """
    Text-to-structure reconstruction engine.

    Orchestrates:
        1. Line splitting
        2. Line classification
        3. Block building
        4. Markup emission
        5. Reporting

    Each call works on its own data; one engine can serve concurrent requests.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.classifier = LineClassifier(self.config.classifier)
        self.emitter = MarkupEmitter(self.config.fallback_message)
        self.reporter = StructureReporter()
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        package_logger = logging.getLogger("docconv")
        package_logger.setLevel(log_level)

        # Console handler, unless records already reach a root handler
        if not package_logger.handlers and not logging.getLogger().handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
            package_logger.addHandler(console)

        # File handler
        if self.config.log_file:
            log_path = Path(self.config.log_file)
            already_attached = any(
                isinstance(h, logging.FileHandler)
                and Path(h.baseFilename) == log_path.resolve()
                for h in package_logger.handlers
            )
            if not already_attached:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_path, encoding="utf-8")
                file_handler.setLevel(log_level)
                file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
                package_logger.addHandler(file_handler)

    # ─── Pipeline Steps ───────────────────────────────────────────────────

    def split_lines(self, text: TextInput) -> list[Line]:
        """
        Turn raw input into indexed Lines.

        Accepts a single string (split on any line break) or a sequence of
        strings. Blank lines are kept; they separate blocks.
        """
        if isinstance(text, str):
            raw_lines = _LINE_BREAK.split(text) if text else []
        elif isinstance(text, Sequence):
            raw_lines = [str(item) for item in text]
        else:
            raise TypeError(
                f"Expected str or sequence of str, got {type(text).__name__}"
            )
        return [Line.from_raw(raw, i) for i, raw in enumerate(raw_lines)]

    def classify_lines(self, lines: Sequence[Line]) -> list[tuple[Line, LineRole]]:
        """Classify every line in source order."""
        return self.classifier.classify_all(lines)

    def reconstruct(self, text: TextInput) -> list[BlockNode]:
        """Return the block tree for `text`."""
        classified = self.classify_lines(self.split_lines(text))
        return BlockBuilder().build(classified)

    def to_html(self, text: TextInput) -> str:
        """Return the HTML fragment for `text`."""
        return self.emitter.emit(self.reconstruct(text))

    def convert(self, text: TextInput) -> StructureResult:
        """
        Run the full pipeline and return blocks, HTML and a report.

        Never raises on empty or blank input; the HTML is then the
        fallback paragraph.
        """
        lines = self.split_lines(text)
        logger.debug(f"Converting {len(lines)} lines")

        classified = self.classify_lines(lines)
        blocks = BlockBuilder().build(classified)
        html = self.emitter.emit(blocks)
        report = self.reporter.summarize(classified, blocks)

        return StructureResult(
            blocks=blocks,
            html=html,
            report=report,
            engine_version=__version__,
        )


def text_to_html(text: TextInput) -> str:
    """Reconstruct `text` into an HTML fragment with default settings."""
    return StructureEngine().to_html(text)
