"""
Tests for the StructureDetector.
"""

from __future__ import annotations

import pytest

from workbook_ingestion.errors import IngestionError, IngestionErrorKind, WarningLog
from workbook_ingestion.schema import SheetRole, TemplateVariant
from workbook_ingestion.structure_detector import StructureDetector


@pytest.fixture
def detector() -> StructureDetector:
    return StructureDetector()


# ======================================================================
# Smart adaptive
# ======================================================================

class TestSmart:
    def test_all_roles(self, detector: StructureDetector, grid) -> None:
        wb = grid({
            "📋 Instruções": [["info"]],
            "✅ Drivers": [["Campo"], ["revenue", 1]],
            "🔧 Overrides DRE": [["Campo"]],
            "🔧 Overrides Balanço": [["Campo"]],
            "🔧 Overrides Caixa": [["Campo"]],
        })
        s = detector.detect(wb)
        assert s.variant is TemplateVariant.SMART_ADAPTIVE
        assert s.sheet_for(SheetRole.DRIVERS) == "✅ Drivers"
        assert s.sheet_for(SheetRole.INSTRUCTIONS) == "📋 Instruções"
        assert s.sheet_for(SheetRole.OVERRIDE_PL) == "🔧 Overrides DRE"
        assert s.sheet_for(SheetRole.OVERRIDE_BS) == "🔧 Overrides Balanço"
        assert s.sheet_for(SheetRole.OVERRIDE_CF) == "🔧 Overrides Caixa"

    def test_missing_overrides_silent(self, detector: StructureDetector, grid) -> None:
        warnings = WarningLog()
        wb = grid({"Instructions": [["x"]], "Drivers": [["Campo"], ["revenue", 1]]})
        s = detector.detect(wb, warnings)
        assert s.variant is TemplateVariant.SMART_ADAPTIVE
        assert s.sheet_for(SheetRole.OVERRIDE_PL) is None
        assert len(warnings) == 0

    def test_english_section_names(self, detector: StructureDetector, grid) -> None:
        wb = grid({
            "Instructions": [["x"]],
            "Drivers": [["k"], ["revenue", 1]],
            "Income Overrides": [["k"]],
            "Cash Flow Overrides": [["k"]],
        })
        s = detector.detect(wb)
        assert s.sheet_for(SheetRole.OVERRIDE_PL) == "Income Overrides"
        assert s.sheet_for(SheetRole.OVERRIDE_CF) == "Cash Flow Overrides"
        assert s.sheet_for(SheetRole.OVERRIDE_BS) is None


# ======================================================================
# Legacy and generic
# ======================================================================

class TestFallbackVariants:
    def test_legacy_header(self, detector: StructureDetector, grid) -> None:
        wb = grid({"Dados": [["Item (Chave Interna)", "Descrição", "P1"], ["revenue", "x", 1]]})
        s = detector.detect(wb)
        assert s.variant is TemplateVariant.BASIC_LEGACY
        assert s.sheet_for(SheetRole.DRIVERS) == "Dados"

    def test_generic_warns(self, detector: StructureDetector, grid) -> None:
        warnings = WarningLog()
        wb = grid({"Sheet1": [["Descrição", 2023, 2024], ["Receita", 1, 2]]})
        s = detector.detect(wb, warnings)
        assert s.variant is TemplateVariant.GENERIC
        assert s.sheet_for(SheetRole.DRIVERS) == "Sheet1"
        assert any("generic" in w for w in warnings.messages)

    def test_generic_skips_empty_first_sheet(self, detector: StructureDetector, grid) -> None:
        wb = grid({"Blank": [], "Data": [["x", 1]]})
        assert detector.detect(wb).sheet_for(SheetRole.DRIVERS) == "Data"

    def test_instructions_without_drivers_is_not_smart(
        self, detector: StructureDetector, grid
    ) -> None:
        wb = grid({"Instruções": [["texto"]], "Plan1": [["Descrição", 1], ["a", 2]]})
        s = detector.detect(wb)
        assert s.variant is TemplateVariant.GENERIC
        assert s.sheet_for(SheetRole.DRIVERS) == "Plan1"
        assert s.sheet_for(SheetRole.INSTRUCTIONS) is None

    def test_legacy_ignores_instructions_sheet(self, detector: StructureDetector, grid) -> None:
        wb = grid({
            "Dados": [["Campo", "Descrição", "Período 1"], ["revenue", "x", 1]],
            "Instruções": [["Tipo de Período:", "Meses"]],
        })
        s = detector.detect(wb)
        assert s.variant is TemplateVariant.BASIC_LEGACY
        assert s.sheet_for(SheetRole.INSTRUCTIONS) is None

    def test_generic_only_instructions_has_data(self, detector: StructureDetector, grid) -> None:
        wb = grid({"Instruções": [["texto", 1]], "Vazia": []})
        s = detector.detect(wb)
        assert s.variant is TemplateVariant.GENERIC
        assert s.sheet_for(SheetRole.DRIVERS) == "Instruções"


# ======================================================================
# Fatal
# ======================================================================

class TestNoData:
    def test_all_sheets_empty(self, detector: StructureDetector, grid) -> None:
        with pytest.raises(IngestionError) as info:
            detector.detect(grid({"A": [], "B": [[None, None]]}))
        assert info.value.kind is IngestionErrorKind.NO_USABLE_WORKSHEET
