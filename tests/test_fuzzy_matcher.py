"""
Unit tests for the FuzzyMatcher.
"""

from __future__ import annotations

import pytest

from workbook_ingestion.config import ExtractionConfig
from workbook_ingestion.fuzzy_matcher import FuzzyMatcher
from workbook_ingestion.schema import FieldDefinition, FieldGroup, ValueType


def _field(key: str, label: str) -> FieldDefinition:
    return FieldDefinition(key, label, ValueType.MONETARY, FieldGroup.DRIVER_OPTIONAL)


@pytest.fixture
def matcher() -> FuzzyMatcher:
    return FuzzyMatcher(config=ExtractionConfig())


@pytest.fixture
def twin_matcher() -> FuzzyMatcher:
    registry = {
        "cashA": _field("cashA", "Caixa Final A"),
        "cashB": _field("cashB", "Caixa Final B"),
    }
    return FuzzyMatcher(config=ExtractionConfig(), registry=registry)


# ======================================================================
# Matching
# ======================================================================

class TestMatch:
    def test_missing_accent_accepted(self, matcher: FuzzyMatcher) -> None:
        result = matcher.match("Receita Liquida (Revenue)")
        assert result is not None
        assert result.field_key == "revenue"
        assert result.score >= 90.0
        assert not result.is_ambiguous

    def test_exact_label(self, matcher: FuzzyMatcher) -> None:
        result = matcher.match("Estoques (Valor Médio do Período)")
        assert result is not None
        assert result.field_key == "inventoryValueAvg"

    def test_gibberish_rejected(self, matcher: FuzzyMatcher) -> None:
        assert matcher.match("xyzzy gibberish") is None

    def test_empty_input(self, matcher: FuzzyMatcher) -> None:
        assert matcher.match("") is None

    def test_threshold_configurable(self) -> None:
        loose = FuzzyMatcher(config=ExtractionConfig(fuzzy_threshold=0.0))
        assert loose.match("receita") is not None


# ======================================================================
# Ambiguity
# ======================================================================

class TestAmbiguity:
    def test_equal_runner_up_flagged(self, twin_matcher: FuzzyMatcher) -> None:
        result = twin_matcher.match("Caixa Final")
        assert result is not None
        assert result.is_ambiguous

    def test_batch(self, twin_matcher: FuzzyMatcher) -> None:
        results = twin_matcher.match_batch(["Caixa Final A", "zzz"])
        assert results["Caixa Final A"].field_key == "cashA"
        assert results["zzz"] is None
