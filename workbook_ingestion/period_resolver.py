"""
Period Count Resolver.

Works out how many reporting periods a workbook *declares* and how many
actually hold data.  The two often differ because templates pre-declare
the maximum number of period columns.

Declared count: an ordered list of independent strategies, each returning
a confident ``PeriodColumns`` or ``None``:

1. ``StrictHeaderStrategy``: whole-cell "Período N" headers
2. ``LooseHeaderStrategy``: period-label fragments anywhere in a header
3. ``DescriptionColumnStrategy``: columns between "Descrição" and "Notas"
4. ``DataSamplingStrategy``: most frequent run of numeric cells in
   sampled data rows (ties go to the larger run)

A result above ``max_periods`` counts as no result.  When every strategy
fails the configured default is used and a warning is recorded.

Actual count: the highest-indexed period column holding numeric data in
the first ``probe_rows`` data rows, so one sparse early column never drops
a later filled period.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence

from workbook_ingestion.config import PeriodConfig
from workbook_ingestion.errors import WarningLog
from workbook_ingestion.excel_parser import SheetGrid, WorkbookGrid
from workbook_ingestion.logging_setup import get_logger
from workbook_ingestion.normalizer import (
    CellNormalizer,
    classify,
    contains_any,
    normalize_header,
)
from workbook_ingestion.schema import (
    OVERRIDE_ROLE_ORDER,
    SheetRole,
    TemplateVariant,
    WorkbookStructure,
)

logger = get_logger("period_resolver")


@dataclass(frozen=True)
class PeriodColumns:
    """Where a sheet's period columns are: ``count`` columns from ``start_column``."""

    count: int
    start_column: int
    strategy: str


@dataclass(frozen=True)
class PeriodResolution:
    declared_count: int
    actual_count: int
    start_column: int
    strategy: str


def find_description_column(sheet: SheetGrid, config: PeriodConfig) -> Optional[int]:
    for idx, cell in enumerate(sheet.header):
        if isinstance(cell.value, str) and contains_any(cell.value, config.description_markers):
            return idx
    return None


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class PeriodStrategy(ABC):
    """One tier of declared-period detection."""

    name: str = "strategy"

    def __init__(self, config: PeriodConfig, normalizer: CellNormalizer) -> None:
        self._config = config
        self._normalizer = normalizer

    @abstractmethod
    def resolve(self, sheet: SheetGrid, default_start: int) -> Optional[PeriodColumns]:
        """Return the period columns, or ``None`` when this tier has no answer."""


class _HeaderMatchStrategy(PeriodStrategy):
    def _matches(self, text: str) -> bool:
        raise NotImplementedError

    def resolve(self, sheet: SheetGrid, default_start: int) -> Optional[PeriodColumns]:
        columns = [
            idx for idx, cell in enumerate(sheet.header)
            if isinstance(cell.value, str) and self._matches(cell.value)
        ]
        if not columns:
            return None
        return PeriodColumns(count=len(columns), start_column=columns[0], strategy=self.name)


class StrictHeaderStrategy(_HeaderMatchStrategy):
    name = "strict_header"

    def __init__(self, config: PeriodConfig, normalizer: CellNormalizer) -> None:
        super().__init__(config, normalizer)
        self._pattern = re.compile(config.strict_header_pattern, re.IGNORECASE)

    def _matches(self, text: str) -> bool:
        return bool(self._pattern.match(normalize_header(text)))


class LooseHeaderStrategy(_HeaderMatchStrategy):
    name = "loose_header"

    def _matches(self, text: str) -> bool:
        # Fragments keep their trailing space, so "per " never matches "operating"
        padded = normalize_header(text) + " "
        return any(frag.lower() in padded for frag in self._config.loose_header_fragments)


class DescriptionColumnStrategy(PeriodStrategy):
    name = "description_column"

    def resolve(self, sheet: SheetGrid, default_start: int) -> Optional[PeriodColumns]:
        header = sheet.header
        desc = find_description_column(sheet, self._config)
        if desc is None:
            return None

        notes = None
        for idx in range(desc + 1, len(header)):
            cell = header[idx]
            if isinstance(cell.value, str) and contains_any(cell.value, self._config.notes_markers):
                notes = idx
                break

        # Leading metadata columns of the variant are never periods
        start = max(default_start, desc + 1)
        if notes is not None:
            count = notes - start
        else:
            count = 0
            for cell in header[start:]:
                if cell.is_empty:
                    break
                count += 1

        if count <= 0:
            return None
        return PeriodColumns(count=count, start_column=start, strategy=self.name)


class DataSamplingStrategy(PeriodStrategy):
    """Most frequent contiguous numeric run across sampled data rows.

    The tie-break toward the larger run is a heuristic, not a hard rule.
    """

    name = "data_sampling"

    def resolve(self, sheet: SheetGrid, default_start: int) -> Optional[PeriodColumns]:
        desc = find_description_column(sheet, self._config)
        start = max(default_start, desc + 1) if desc is not None else default_start

        runs: Counter[int] = Counter()
        sampled = 0
        for _, row in sheet.data_rows():
            if sampled >= self._config.sample_rows:
                break
            if all(c.is_empty for c in row):
                continue
            sampled += 1
            run = 0
            for col in range(start, len(row)):
                if not self._normalizer.is_numeric(row[col]):
                    break
                run += 1
            if run > 0:
                runs[run] += 1

        if not runs:
            return None
        count, _ = max(runs.items(), key=lambda item: (item[1], item[0]))
        return PeriodColumns(count=count, start_column=start, strategy=self.name)


DEFAULT_STRATEGIES = (
    StrictHeaderStrategy,
    LooseHeaderStrategy,
    DescriptionColumnStrategy,
    DataSamplingStrategy,
)


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class PeriodCountResolver:
    """Resolve declared and actual period counts for a detected structure.

    Parameters
    ----------
    config:
        Period limits, probe windows and header patterns.
    normalizer:
        Used to decide whether a cell holds numeric content.
    strategies:
        Strategy classes tried in order; defaults to ``DEFAULT_STRATEGIES``.
    """

    def __init__(
        self,
        config: Optional[PeriodConfig] = None,
        normalizer: Optional[CellNormalizer] = None,
        strategies: Optional[Sequence[type]] = None,
    ) -> None:
        self._config = config or PeriodConfig()
        self._normalizer = normalizer or CellNormalizer()
        self._strategies: List[PeriodStrategy] = [
            cls(self._config, self._normalizer) for cls in (strategies or DEFAULT_STRATEGIES)
        ]

    @property
    def strategies(self) -> List[PeriodStrategy]:
        return list(self._strategies)

    def default_start(self, variant: TemplateVariant) -> int:
        if variant is TemplateVariant.SMART_ADAPTIVE:
            return self._config.smart_first_column
        if variant is TemplateVariant.BASIC_LEGACY:
            return self._config.legacy_first_column
        return self._config.generic_first_column

    def locate(self, sheet: SheetGrid, default_start: int) -> Optional[PeriodColumns]:
        """Run the strategy tiers in order; first in-range answer wins."""
        for strategy in self._strategies:
            result = strategy.resolve(sheet, default_start)
            if result is None or result.count <= 0:
                logger.debug("Tier %s: no result on %r", strategy.name, sheet.name)
                continue
            if result.count > self._config.max_periods:
                logger.info(
                    "Tier %s found %d periods on %r, more than the maximum %d; ignored",
                    strategy.name, result.count, sheet.name, self._config.max_periods,
                )
                continue
            logger.info(
                "Tier %s resolved %d period(s) starting at column %d on %r",
                strategy.name, result.count, result.start_column, sheet.name,
            )
            return result
        return None

    def start_column(self, sheet: SheetGrid, default_start: int) -> int:
        """First period column of *sheet* from its own header, else the default."""
        for strategy in self._strategies[:2]:
            result = strategy.resolve(sheet, default_start)
            if result is not None:
                return result.start_column
        desc = find_description_column(sheet, self._config)
        if desc is not None and desc + 1 > default_start:
            return desc + 1
        return default_start

    def resolve(
        self,
        workbook: WorkbookGrid,
        structure: WorkbookStructure,
        warnings: Optional[WarningLog] = None,
    ) -> PeriodResolution:
        warnings = warnings if warnings is not None else WarningLog()
        default_start = self.default_start(structure.variant)
        data_sheet = workbook.get(structure.sheet_for(SheetRole.DRIVERS))

        located = self.locate(data_sheet, default_start) if data_sheet is not None else None
        if located is None:
            declared = self._config.default_periods
            start = (
                self.start_column(data_sheet, default_start)
                if data_sheet is not None else default_start
            )
            strategy = "default"
            warnings.add(
                f"Could not detect the number of periods; assuming {declared}"
            )
        else:
            declared, start, strategy = located.count, located.start_column, located.strategy

        declared = min(max(declared, 1), self._config.max_periods)

        actual = 0
        if data_sheet is not None:
            actual = self.count_actual(data_sheet, start, declared)
        for role in OVERRIDE_ROLE_ORDER:
            sheet = workbook.get(structure.sheet_for(role))
            if sheet is not None:
                sheet_start = self.start_column(sheet, default_start)
                actual = max(actual, self.count_actual(sheet, sheet_start, declared))

        if actual == 0:
            warnings.add("No numeric period data found in the workbook")
            actual = 1

        logger.info(
            "Periods: declared=%d actual=%d (strategy=%s, start column=%d)",
            declared, actual, strategy, start,
        )
        return PeriodResolution(
            declared_count=declared,
            actual_count=min(actual, declared),
            start_column=start,
            strategy=strategy,
        )

    def count_actual(self, sheet: SheetGrid, start: int, declared: int) -> int:
        """1 + index of the last period column with data in the probe window."""
        last = 0
        probe = range(1, 1 + self._config.probe_rows)
        for period_idx in range(declared):
            col = start + period_idx
            if any(self._normalizer.has_data(sheet.cell(r, col)) for r in probe):
                last = period_idx + 1
        return last

    # ------------------------------------------------------------------ #
    # Period type
    # ------------------------------------------------------------------ #

    def resolve_period_type(
        self,
        workbook: WorkbookGrid,
        structure: WorkbookStructure,
        hint: Optional[str] = None,
    ) -> Optional[str]:
        """Period-type key from the instructions sheet, else the caller's hint."""
        sheet = workbook.get(structure.sheet_for(SheetRole.INSTRUCTIONS))
        if sheet is not None:
            value = self._labelled_value(sheet, self._config.period_type_labels)
            if value is not None and str(value).strip():
                resolved = self._match_period_type(str(value))
                logger.info("Period type from instructions sheet: %r", resolved)
                return resolved
        if hint:
            return self._match_period_type(hint)
        return None

    def instructions_period_count(
        self, workbook: WorkbookGrid, structure: WorkbookStructure
    ) -> Optional[int]:
        """The period count stated on the instructions sheet, if any."""
        sheet = workbook.get(structure.sheet_for(SheetRole.INSTRUCTIONS))
        if sheet is None:
            return None
        value = self._labelled_value(sheet, self._config.period_count_labels)
        if value is None:
            return None
        number = self._normalizer.to_number(classify(value))
        return int(number) if number is not None else None

    @staticmethod
    def _labelled_value(sheet: SheetGrid, labels: Sequence[str]) -> Optional[object]:
        for row in sheet.rows:
            for idx, cell in enumerate(row):
                if isinstance(cell.value, str) and contains_any(cell.value, labels):
                    for candidate in row[idx + 1:]:
                        if not candidate.is_empty:
                            return candidate.value
        return None

    def _match_period_type(self, text: str) -> str:
        norm = normalize_header(text)
        for key, info in self._config.period_types.items():
            names = {key, info.label, info.short_label}
            if norm in {normalize_header(n) for n in names}:
                return key
        return text.strip()
