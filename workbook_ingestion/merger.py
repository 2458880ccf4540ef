"""
Override Precedence Merger.

Folds independently extracted sheets into one ``PeriodDataset``.  The
drivers pass is applied first, then the override sheets in the fixed
P&L → balance sheet → cash flow order.  Any value other than ``None``
replaces what is already in the cell, so a known actual always beats an
estimate.  A missing sheet simply contributes nothing.
"""

from __future__ import annotations

from typing import Mapping, Optional

from workbook_ingestion.field_extractor import SheetExtraction
from workbook_ingestion.logging_setup import get_logger
from workbook_ingestion.schema import (
    FIELD_REGISTRY,
    OVERRIDE_ROLE_ORDER,
    FieldDefinition,
    PeriodDataset,
    SheetRole,
)

logger = get_logger("merger")


class OverrideMerger:
    """Apply sheet extractions to a fresh dataset in precedence order."""

    def __init__(self, registry: Mapping[str, FieldDefinition] = FIELD_REGISTRY) -> None:
        self._registry = registry

    def merge(
        self,
        period_count: int,
        drivers: Optional[SheetExtraction],
        overrides: Optional[Mapping[SheetRole, SheetExtraction]] = None,
    ) -> PeriodDataset:
        dataset = PeriodDataset(period_count, self._registry)
        overrides = overrides or {}

        if drivers is not None:
            self.apply(dataset, drivers)

        for role in OVERRIDE_ROLE_ORDER:
            extraction = overrides.get(role)
            if extraction is None:
                logger.debug("No %s sheet; nothing to merge", role.value)
                continue
            replaced = self.apply(dataset, extraction)
            logger.info(
                "Merged %s sheet %r (%d cell(s) written)",
                role.value, extraction.sheet_name, replaced,
            )
        return dataset

    @staticmethod
    def apply(dataset: PeriodDataset, extraction: SheetExtraction) -> int:
        """Write every non-``None`` value; returns the number of cells written."""
        written = 0
        for idx, key, value in extraction.items():
            if value is None or idx >= len(dataset):
                continue
            if dataset.set_value(idx, key, value):
                written += 1
        return written
