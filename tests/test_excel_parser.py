"""
Tests for the ExcelParser (openpyxl → WorkbookGrid).
"""

from __future__ import annotations

import zipfile
from io import BytesIO
from pathlib import Path

import openpyxl
import pytest

from workbook_ingestion.errors import IngestionError, IngestionErrorKind
from workbook_ingestion.excel_parser import ExcelParser
from workbook_ingestion.normalizer import EMPTY_CELL, CellKind


@pytest.fixture
def parser() -> ExcelParser:
    return ExcelParser()


def _replace_member(data: bytes, member: str, payload: bytes) -> bytes:
    """Copy an xlsx archive with one member overwritten."""
    out = BytesIO()
    with zipfile.ZipFile(BytesIO(data)) as src, zipfile.ZipFile(out, "w") as dst:
        for item in src.infolist():
            dst.writestr(item, payload if item.filename == member else src.read(item.filename))
    return out.getvalue()


# ======================================================================
# Reading
# ======================================================================

class TestParseBytes:
    def test_sheets_in_order(self, parser: ExcelParser, xlsx) -> None:
        data = xlsx({"A": [["x"]], "B": [["y"]]})
        grid = parser.parse_bytes(data)
        assert grid.sheet_names == ["A", "B"]

    def test_cell_kinds(self, parser: ExcelParser, xlsx) -> None:
        data = xlsx({"S": [["revenue", 100, "abc", None, "[N/A]"]]})
        sheet = parser.parse_bytes(data).get("S")
        assert sheet.cell(0, 0).kind is CellKind.TEXT
        assert sheet.cell(0, 1).kind is CellKind.NUMBER
        assert sheet.cell(0, 3).is_empty
        assert sheet.cell(0, 4).value == "[N/A]"

    def test_out_of_range_is_empty(self, parser: ExcelParser, xlsx) -> None:
        sheet = parser.parse_bytes(xlsx({"S": [["a"]]})).get("S")
        assert sheet.cell(5, 5) is EMPTY_CELL
        assert sheet.cell(-1, 0) is EMPTY_CELL

    def test_formula_cell_tagged(self, parser: ExcelParser, xlsx) -> None:
        data = xlsx({"S": [[1, 2, "=A1+B1"]]})
        cell = parser.parse_bytes(data).get("S").cell(0, 2)
        assert cell.kind is CellKind.FORMULA
        assert cell.formula == "=A1+B1"
        # openpyxl does not calculate, so no cached result was stored
        assert cell.value is None

    def test_trailing_empty_rows_dropped(self, parser: ExcelParser) -> None:
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "S"
        ws["A1"] = "h"
        ws["C5"] = None
        buf = BytesIO()
        wb.save(buf)
        sheet = parser.parse_bytes(buf.getvalue()).get("S")
        assert sheet.row_count == 1

    def test_empty_sheet_has_no_data(self, parser: ExcelParser, xlsx) -> None:
        grid = parser.parse_bytes(xlsx({"Empty": [], "Full": [["x"]]}))
        assert not grid.get("Empty").has_data
        assert grid.first_non_empty().name == "Full"


# ======================================================================
# Failures
# ======================================================================

class TestUnreadable:
    def test_garbage_bytes(self, parser: ExcelParser) -> None:
        with pytest.raises(IngestionError) as info:
            parser.parse_bytes(b"this is not a workbook")
        assert info.value.kind is IngestionErrorKind.UNREADABLE_WORKBOOK
        assert info.value.__cause__ is not None

    def test_empty_buffer(self, parser: ExcelParser) -> None:
        with pytest.raises(IngestionError) as info:
            parser.parse_bytes(b"")
        assert info.value.kind is IngestionErrorKind.UNREADABLE_WORKBOOK

    @pytest.mark.parametrize(
        "member", ["xl/workbook.xml", "xl/worksheets/sheet1.xml", "xl/styles.xml"]
    )
    def test_corrupt_xml_member(self, parser: ExcelParser, xlsx, member: str) -> None:
        data = _replace_member(xlsx({"S": [["revenue", 1]]}), member, b"<not-xml")
        with pytest.raises(IngestionError) as info:
            parser.parse_bytes(data)
        assert info.value.kind is IngestionErrorKind.UNREADABLE_WORKBOOK

    def test_missing_file(self, parser: ExcelParser, tmp_path: Path) -> None:
        with pytest.raises(IngestionError) as info:
            parser.parse_file(tmp_path / "nope.xlsx")
        assert info.value.kind is IngestionErrorKind.UNREADABLE_WORKBOOK

    def test_parse_file(self, parser: ExcelParser, xlsx, tmp_path: Path) -> None:
        path = tmp_path / "book.xlsx"
        path.write_bytes(xlsx({"S": [["revenue", 1]]}))
        assert parser.parse_file(path).get("S").cell(0, 1).value == 1
