"""
Configuration module for Workbook Ingestion.

All tuneable parameters (sheet markers, period limits, sentinels and
scoring weights) live here. Nothing is hard-coded in business logic modules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class DetectionConfig:
    """Controls how a workbook is classified into a template variant."""

    # Substrings (case-insensitive) identifying the explanatory sheet
    instructions_markers: Tuple[str, ...] = ("instruções", "instrucoes", "instructions")

    # Substrings identifying the primary drivers sheet
    drivers_markers: Tuple[str, ...] = ("drivers",)

    # Per financial-statement section: substrings identifying its override sheet
    override_pl_markers: Tuple[str, ...] = ("dre", "p&l", "resultado", "income")
    override_bs_markers: Tuple[str, ...] = ("balanço", "balanco", "balance")
    override_cf_markers: Tuple[str, ...] = ("caixa", "cash")

    # Header-label substrings that identify the basic / legacy template
    legacy_header_patterns: Tuple[str, ...] = (
        "Item (Chave Interna)",
        "Campo",
        "Field Key",
        "Item",
        "Chave Interna",
    )


@dataclass(frozen=True)
class PeriodTypeInfo:
    """A reporting-period granularity."""

    label: str
    short_label: str
    days: float


def _default_period_types() -> Dict[str, PeriodTypeInfo]:
    return {
        "anos": PeriodTypeInfo(label="Anos", short_label="Ano", days=365.0),
        "trimestres": PeriodTypeInfo(label="Trimestres", short_label="Trim.", days=91.25),
        "meses": PeriodTypeInfo(label="Meses", short_label="Mês", days=30.4167),
    }


@dataclass(frozen=True)
class PeriodConfig:
    """Controls declared / actual period-count resolution."""

    max_periods: int = 6

    # Used (with a warning) when every detection tier fails
    default_periods: int = 2

    # Data rows sampled by the numeric-column-count tier
    sample_rows: int = 5

    # Data rows probed per period column when counting actual data periods
    probe_rows: int = 20

    # 0-based column where period data conventionally begins, per variant
    smart_first_column: int = 4      # column E
    legacy_first_column: int = 2     # column C
    generic_first_column: int = 1    # column B

    # Whole-cell match: a period word followed by an integer
    strict_header_pattern: str = r"^\s*(per[íi]odo|period|p)\s*\d+\s*$"

    # Substring fragments for the relaxed header tier
    loose_header_fragments: Tuple[str, ...] = (
        "período ", "periodo ", "period ", "per ",
        "p1", "p2", "p3", "p4", "p5", "p6",
    )

    description_markers: Tuple[str, ...] = ("descrição", "descricao", "description")
    notes_markers: Tuple[str, ...] = ("nota", "notes", "instrução", "instrucao")

    period_type_labels: Tuple[str, ...] = ("tipo de período", "tipo de periodo", "period type")
    period_count_labels: Tuple[str, ...] = (
        "número de períodos", "numero de periodos", "number of periods",
    )

    period_types: Dict[str, PeriodTypeInfo] = field(default_factory=_default_period_types)


@dataclass(frozen=True)
class ExtractionConfig:
    """Controls row-key resolution and cell coercion."""

    # Cell texts meaning "this field does not apply to this period"
    not_applicable_markers: Tuple[str, ...] = ("[N/A]", "[Não Aplicável]", "[Nao Aplicavel]")

    # When True, a leading cell holding a display label (rather than the
    # internal key) is resolved to its key.
    enable_label_matching: bool = True

    # Fuzzy label matching: minimum similarity (0–100) to accept a match
    fuzzy_threshold: float = 90.0

    # Runner-up within this delta of the best → ambiguous → rejected
    fuzzy_ambiguity_delta: float = 3.0

    # Optional JSON file of {alias: field_key} merged into the resolver
    custom_alias_path: Optional[Path] = None


@dataclass(frozen=True)
class QualityConfig:
    """Controls the completeness score and recommendation thresholds."""

    required_weight: float = 0.6
    optional_weight: float = 0.2
    override_bonus_per_value: float = 1.5
    override_bonus_cap: float = 20.0

    # Recommendation thresholds (percent)
    low_required_threshold: float = 50.0
    suggest_overrides_threshold: float = 80.0
    low_optional_threshold: float = 30.0


@dataclass(frozen=True)
class PipelineConfig:
    """Top-level configuration aggregating all sub-configs."""

    detection: DetectionConfig = field(default_factory=DetectionConfig)
    periods: PeriodConfig = field(default_factory=PeriodConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    quality: QualityConfig = field(default_factory=QualityConfig)

    # Logging level for the ingestion audit trail
    log_level: int = logging.INFO

    # Optional file receiving the same log lines as the console
    log_file: Optional[str] = None

    # When True, a run that recognises zero field rows raises instead of
    # returning an all-empty dataset with a warning.
    strict_mode: bool = False
