"""
Tests for the ResultBuilder: assembly and serialisation.
"""

from __future__ import annotations

import csv
import json
from io import StringIO

import pytest

from workbook_ingestion.quality import QualityAnalyzer
from workbook_ingestion.schema import (
    FIELD_REGISTRY,
    IngestionResult,
    PeriodDataset,
    SheetRole,
    TemplateVariant,
    WorkbookStructure,
)
from workbook_ingestion.schema_builder import ResultBuilder


@pytest.fixture
def result() -> IngestionResult:
    ds = PeriodDataset(2)
    ds.set_value(0, "revenue", 1000.0)
    ds.set_value(1, "revenue", 1200.0)
    ds.set_value(0, "openingCash", 50.0)
    structure = WorkbookStructure(
        TemplateVariant.SMART_ADAPTIVE, {SheetRole.DRIVERS: "Drivers"}, declared_period_count=3
    )
    return ResultBuilder.build(
        dataset=ds,
        structure=structure,
        actual_period_count=2,
        quality=QualityAnalyzer().analyze(ds),
        period_type="anos",
        recommendations=["note"],
        warnings=["warn"],
    )


# ======================================================================
# Assembly
# ======================================================================

class TestBuild:
    def test_dataset_frozen(self, result: IngestionResult) -> None:
        assert result.dataset.frozen

    def test_properties(self, result: IngestionResult) -> None:
        assert result.variant is TemplateVariant.SMART_ADAPTIVE
        assert result.declared_period_count == 3
        assert result.periods is result.dataset


# ======================================================================
# JSON
# ======================================================================

class TestJson:
    def test_round_trip_shape(self, result: IngestionResult) -> None:
        data = json.loads(ResultBuilder.to_json(result))
        assert data["variant"] == "smart_adaptive"
        assert data["declared_period_count"] == 3
        assert data["actual_period_count"] == 2
        assert data["period_type"] == "anos"
        assert data["sheet_roles"] == {"drivers": "Drivers"}
        assert data["periods"][0]["revenue"] == 1000.0
        assert data["periods"][1]["openingCash"] == "N/A"
        assert data["quality"]["has_overrides"] is False
        assert data["recommendations"] == ["note"]
        assert data["warnings"] == ["warn"]


# ======================================================================
# CSV
# ======================================================================

class TestCsv:
    def test_layout(self, result: IngestionResult) -> None:
        rows = list(csv.reader(StringIO(ResultBuilder.to_csv_string(result))))
        assert rows[0] == ["field_key", "label", "group", "period_1", "period_2"]
        assert len(rows) == 1 + len(FIELD_REGISTRY)
        by_key = {r[0]: r for r in rows[1:]}
        assert by_key["revenue"][3:] == ["1000.0", "1200.0"]
        assert by_key["openingCash"][3:] == ["50.0", "N/A"]
        assert by_key["dividendsPaid"][3:] == ["", ""]


# ======================================================================
# DataFrame
# ======================================================================

class TestDataFrame:
    def test_shape(self, result: IngestionResult) -> None:
        pytest.importorskip("pandas")
        df = ResultBuilder.to_dataframe(result)
        assert df.shape == (2, len(FIELD_REGISTRY))
        assert list(df.index) == ["period_1", "period_2"]
        assert df.loc["period_2", "openingCash"] == "N/A"
