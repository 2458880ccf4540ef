"""
Recommendation Generator.

Turns a ``QualityReport`` into short advisory strings using a fixed
threshold table (see ``QualityConfig``).  Output order is fixed:

1. required completeness below ``low_required_threshold``
2. no overrides while required completeness is below
   ``suggest_overrides_threshold``
3. overrides present (acknowledged)
4. optional completeness below ``low_optional_threshold``
"""

from __future__ import annotations

from typing import List, Optional

from workbook_ingestion.config import QualityConfig
from workbook_ingestion.schema import QualityReport


class RecommendationGenerator:
    def __init__(self, config: Optional[QualityConfig] = None) -> None:
        self._config = config or QualityConfig()

    def generate(self, report: QualityReport) -> List[str]:
        cfg = self._config
        messages: List[str] = []

        if report.required_completeness < cfg.low_required_threshold:
            messages.append(
                f"Required drivers are only {report.required_completeness:.0f}% complete; "
                "fill in the missing core drivers for reliable projections."
            )

        if not report.has_overrides and report.required_completeness < cfg.suggest_overrides_threshold:
            messages.append(
                "No override values were supplied; enter known actuals on the "
                "override sheets to improve accuracy."
            )

        if report.has_overrides:
            messages.append(
                f"{report.override_count} override value(s) supplied; they take "
                "priority over driver-based estimates."
            )

        if report.optional_completeness < cfg.low_optional_threshold:
            messages.append(
                "Most optional drivers are empty; adding them (D&A, tax rate, "
                "CAPEX, working-capital days) refines the projections."
            )

        return messages
