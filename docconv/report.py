"""
Structure Reporter
==================
Post-reconstruction summary.

After each conversion, generates a report:
    - Total / blank lines
    - Lines classified as heading, list item, paragraph text
    - Heading level breakdown
    - Number of emitted blocks
    - Warnings for degenerate input (empty, no structure detected)
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Sequence

from .models import BlockNode, Line, LineRole, RoleKind, StructureReport

logger = logging.getLogger(__name__)


class StructureReporter:
    """
    Summarizes one reconstruction run.
    """

    def summarize(
        self,
        classified: Sequence[tuple[Line, LineRole]],
        blocks: Sequence[BlockNode],
    ) -> StructureReport:
        """
        Build the report for a conversion.

        Args:
            classified: The (line, role) pairs fed to the block builder.
            blocks: The block tree the builder produced.

        Returns:
            StructureReport with counts and warnings.
        """
        report = StructureReport(total_lines=len(classified), block_count=len(blocks))

        kinds = Counter(role.kind for _, role in classified)
        report.blank_lines = kinds[RoleKind.BLANK]
        report.heading_lines = kinds[RoleKind.HEADING]
        report.list_item_lines = kinds[RoleKind.LIST_ITEM]
        report.paragraph_lines = kinds[RoleKind.PARAGRAPH_TEXT]

        levels = Counter(
            role.level for _, role in classified if role.kind == RoleKind.HEADING
        )
        report.heading_levels = dict(sorted(levels.items()))

        if not blocks:
            report.warnings.append("No content found; fallback output emitted")
            logger.warning("Reconstruction produced no blocks")
        elif report.heading_lines == 0 and report.list_item_lines == 0:
            report.warnings.append("No headings or list items detected")

        long_lines = sum(1 for line, _ in classified if len(line.text) > 1000)
        if long_lines:
            report.warnings.append(
                f"{long_lines} line(s) longer than 1000 characters; "
                "source may lack line breaks"
            )

        logger.info(
            f"Structure: {report.total_lines} lines → {report.block_count} blocks "
            f"({report.heading_lines} headings, {report.list_item_lines} list items, "
            f"{report.paragraph_lines} paragraph lines)"
        )

        return report
