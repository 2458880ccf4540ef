"""
Data Quality Analyzer.

Scores how complete an ingested dataset is.  Only numeric values count as
filled; ``NOT_APPLICABLE`` cells of first-period-only fields are not
applicable at all and drop out of the denominator.

    score = min(100, round(0.6 × required% + 0.2 × optional%
                           + min(override_cells × 1.5, 20)))

Rounding is half-up so that a score of exactly ``x.5`` never depends on
banker's rounding.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

from workbook_ingestion.config import QualityConfig
from workbook_ingestion.logging_setup import get_logger
from workbook_ingestion.schema import (
    DRIVER_GROUPS,
    FieldDefinition,
    PeriodDataset,
    QualityReport,
    is_number,
)

logger = get_logger("quality")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _applicable(definition: FieldDefinition, period_index: int) -> bool:
    return not (definition.first_period_only and period_index > 0)


class QualityAnalyzer:
    """Build a ``QualityReport`` from a ``PeriodDataset``."""

    def __init__(self, config: Optional[QualityConfig] = None) -> None:
        self._config = config or QualityConfig()

    def analyze(self, dataset: PeriodDataset) -> QualityReport:
        req_filled, req_total = self._completeness(dataset, required=True)
        opt_filled, opt_total = self._completeness(dataset, required=False)
        override_count = self._override_count(dataset)

        required_pct = req_filled / req_total * 100 if req_total else 0.0
        optional_pct = opt_filled / opt_total * 100 if opt_total else 0.0

        cfg = self._config
        bonus = min(override_count * cfg.override_bonus_per_value, cfg.override_bonus_cap)
        raw = cfg.required_weight * required_pct + cfg.optional_weight * optional_pct + bonus
        score = min(100, round_half_up(raw))

        report = QualityReport(
            required_completeness=required_pct,
            optional_completeness=optional_pct,
            override_count=override_count,
            quality_score=score,
            required_filled=req_filled,
            required_applicable=req_total,
            optional_filled=opt_filled,
            optional_applicable=opt_total,
        )
        logger.info(
            "Quality: required=%.1f%% (%d/%d) optional=%.1f%% (%d/%d) "
            "overrides=%d score=%d",
            required_pct, req_filled, req_total,
            optional_pct, opt_filled, opt_total,
            override_count, score,
        )
        return report

    # ------------------------------------------------------------------ #
    # Counting
    # ------------------------------------------------------------------ #

    @staticmethod
    def _completeness(dataset: PeriodDataset, required: bool) -> Tuple[int, int]:
        filled = applicable = 0
        for key, definition in dataset.registry.items():
            if definition.group not in DRIVER_GROUPS or definition.required != required:
                continue
            for idx, record in enumerate(dataset):
                if not _applicable(definition, idx):
                    continue
                applicable += 1
                if is_number(record[key]):
                    filled += 1
        return filled, applicable

    @staticmethod
    def _override_count(dataset: PeriodDataset) -> int:
        keys = [k for k, d in dataset.registry.items() if d.is_override]
        return sum(1 for record in dataset for k in keys if record[k] is not None)
