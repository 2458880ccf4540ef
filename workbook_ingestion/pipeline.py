"""
Pipeline Orchestrator.

The central entry point that wires together every stage:

    xlsx bytes  →  ExcelParser  →  StructureDetector  →  PeriodCountResolver
                →  FieldExtractor (per sheet)  →  OverrideMerger
                →  QualityAnalyzer  →  RecommendationGenerator  →  Result

Stages run strictly in that order.  Only an unreadable workbook or a
workbook without any data raises; every other anomaly becomes a warning on
the returned ``IngestionResult``.

Usage
-----
>>> from workbook_ingestion.pipeline import WorkbookIngestionPipeline
>>>
>>> pipe = WorkbookIngestionPipeline()
>>> result = pipe.ingest_file("modelo.xlsx")
>>> print(result.actual_period_count, result.quality.quality_score)
"""

from __future__ import annotations

from pathlib import Path
from typing import Collection, Dict, Optional, Union

from workbook_ingestion.config import PipelineConfig
from workbook_ingestion.errors import IngestionError, IngestionErrorKind, WarningLog
from workbook_ingestion.excel_parser import ExcelParser, WorkbookGrid
from workbook_ingestion.field_extractor import FieldExtractor, SheetExtraction
from workbook_ingestion.logging_setup import configure_logging, get_logger
from workbook_ingestion.merger import OverrideMerger
from workbook_ingestion.normalizer import CellNormalizer
from workbook_ingestion.period_resolver import PeriodCountResolver, PeriodResolution
from workbook_ingestion.quality import QualityAnalyzer
from workbook_ingestion.recommendations import RecommendationGenerator
from workbook_ingestion.schema import (
    FIELD_REGISTRY,
    OVERRIDE_ROLE_ORDER,
    ROLE_GROUPS,
    IngestionResult,
    SheetRole,
    TemplateVariant,
    WorkbookStructure,
    driver_field_keys,
    get_field_keys,
)
from workbook_ingestion.schema_builder import ResultBuilder
from workbook_ingestion.structure_detector import StructureDetector
from workbook_ingestion.synonym_mapper import KeyResolver

logger = get_logger("pipeline")


class WorkbookIngestionPipeline:
    """Orchestrates the full workbook ingestion.

    Parameters
    ----------
    config:
        All tuneable knobs.  Defaults match the published templates.
    extra_aliases:
        Additional ``{alias: field_key}`` row labels to accept.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        extra_aliases: Optional[Dict[str, str]] = None,
    ) -> None:
        self._config = config or PipelineConfig()

        # Bootstrap logging before anything else
        configure_logging(level=self._config.log_level, log_file=self._config.log_file)

        self._normalizer = CellNormalizer(self._config.extraction.not_applicable_markers)
        self._resolver = KeyResolver(self._config.extraction, FIELD_REGISTRY)
        if extra_aliases:
            self._resolver.add_aliases(extra_aliases)

        self._parser = ExcelParser()
        self._detector = StructureDetector(self._config.detection)
        self._periods = PeriodCountResolver(self._config.periods, self._normalizer)
        self._extractor = FieldExtractor(self._resolver, self._normalizer, FIELD_REGISTRY)
        self._merger = OverrideMerger(FIELD_REGISTRY)
        self._quality = QualityAnalyzer(self._config.quality)
        self._advisor = RecommendationGenerator(self._config.quality)

        logger.info(
            "Pipeline initialised: fields=%d, aliases=%d, max_periods=%d, strict=%s",
            len(FIELD_REGISTRY),
            self._resolver.alias_count,
            self._config.periods.max_periods,
            self._config.strict_mode,
        )

    # ------------------------------------------------------------------ #
    # Entry points
    # ------------------------------------------------------------------ #

    def ingest_bytes(
        self, data: bytes, expected_period_type: Optional[str] = None
    ) -> IngestionResult:
        """Ingest a workbook held in memory.

        Parameters
        ----------
        data:
            Raw ``.xlsx`` bytes.
        expected_period_type:
            Fallback period-type label when the workbook does not state one.

        Raises
        ------
        IngestionError
            ``UNREADABLE_WORKBOOK`` or ``NO_USABLE_WORKSHEET``.
        """
        workbook = self._parser.parse_bytes(data)
        return self._run(workbook, expected_period_type)

    def ingest_file(
        self, path: Union[str, Path], expected_period_type: Optional[str] = None
    ) -> IngestionResult:
        """Ingest a workbook from disk."""
        workbook = self._parser.parse_file(path)
        return self._run(workbook, expected_period_type)

    def add_aliases(self, mapping: Dict[str, str]) -> None:
        """Hot-add row aliases after pipeline construction."""
        self._resolver.add_aliases(mapping)

    # ------------------------------------------------------------------ #
    # Core pipeline logic
    # ------------------------------------------------------------------ #

    def _run(
        self, workbook: WorkbookGrid, expected_period_type: Optional[str]
    ) -> IngestionResult:
        warnings = WarningLog()

        structure = self._detector.detect(workbook, warnings)
        resolution = self._periods.resolve(workbook, structure, warnings)
        structure = structure.with_period_count(resolution.declared_count)

        stated = self._periods.instructions_period_count(workbook, structure)
        if stated is not None and stated != resolution.declared_count:
            warnings.add(
                f"Instructions sheet states {stated} period(s) but "
                f"{resolution.declared_count} period column(s) were found"
            )
        period_type = self._periods.resolve_period_type(
            workbook, structure, expected_period_type
        )

        drivers, overrides = self._extract_all(workbook, structure, resolution, warnings)

        dataset = self._merger.merge(resolution.actual_count, drivers, overrides)
        quality = self._quality.analyze(dataset)
        recommendations = self._advisor.generate(quality)

        result = ResultBuilder.build(
            dataset=dataset,
            structure=structure,
            actual_period_count=resolution.actual_count,
            quality=quality,
            period_type=period_type,
            recommendations=recommendations,
            warnings=warnings.messages,
        )
        logger.info(
            "Ingestion complete: variant=%s, periods=%d/%d, score=%d, warnings=%d",
            structure.variant.value,
            resolution.actual_count,
            resolution.declared_count,
            quality.quality_score,
            len(warnings),
        )
        return result

    def _extract_all(
        self,
        workbook: WorkbookGrid,
        structure: WorkbookStructure,
        resolution: PeriodResolution,
        warnings: WarningLog,
    ) -> tuple[Optional[SheetExtraction], Dict[SheetRole, SheetExtraction]]:
        count = resolution.actual_count
        default_start = self._periods.default_start(structure.variant)

        drivers: Optional[SheetExtraction] = None
        drivers_sheet = workbook.get(structure.sheet_for(SheetRole.DRIVERS))
        if drivers_sheet is None:
            warnings.add("Drivers sheet not found; driver fields left empty")
        else:
            drivers = self._extractor.extract(
                drivers_sheet,
                self._driver_sheet_keys(structure.variant),
                count,
                resolution.start_column,
            )
            if drivers.rows_matched == 0:
                warnings.add(f"Sheet '{drivers_sheet.name}' has no recognised field rows")

        overrides: Dict[SheetRole, SheetExtraction] = {}
        for role in OVERRIDE_ROLE_ORDER:
            sheet = workbook.get(structure.sheet_for(role))
            if sheet is None:
                continue
            start = self._periods.start_column(sheet, default_start)
            overrides[role] = self._extractor.extract(
                sheet, get_field_keys(ROLE_GROUPS[role]), count, start
            )

        matched = (drivers.rows_matched if drivers else 0) + sum(
            e.rows_matched for e in overrides.values()
        )
        if matched == 0:
            if self._config.strict_mode:
                raise IngestionError(
                    IngestionErrorKind.NO_USABLE_WORKSHEET,
                    "No recognised field rows were found in any worksheet",
                )
            warnings.add("No recognised field rows were found; the dataset is empty")
        return drivers, overrides

    @staticmethod
    def _driver_sheet_keys(variant: TemplateVariant) -> Collection[str]:
        if variant is TemplateVariant.BASIC_LEGACY:
            return driver_field_keys()
        return list(FIELD_REGISTRY)
