"""
Shared fixtures: workbooks built in memory with openpyxl.
"""

from __future__ import annotations

from io import BytesIO
from typing import Any, Callable, Dict, List, Sequence

import openpyxl
import pytest

from workbook_ingestion.excel_parser import SheetGrid, WorkbookGrid, _trim
from workbook_ingestion.normalizer import classify

Rows = Sequence[Sequence[Any]]

SMART_HEADER_4 = [
    "Campo", "Descrição", "Tipo", "Obrigatório",
    "Período 1", "Período 2", "Período 3", "Período 4",
    "Notas/Instruções Adicionais",
]


def build_xlsx(sheets: Dict[str, Rows]) -> bytes:
    """Write ``{sheet_name: rows}`` to xlsx bytes, sheets in dict order."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(name)
        for row in rows:
            ws.append(list(row))
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def build_grid(sheets: Dict[str, Rows]) -> WorkbookGrid:
    """Same shape as ``build_xlsx`` but straight to a grid, no file round-trip."""
    grid = WorkbookGrid()
    for name, rows in sheets.items():
        cells = [[classify(v) for v in row] for row in rows]
        grid.sheets.append(SheetGrid(name=name, rows=_trim(cells)))
    return grid


@pytest.fixture
def xlsx() -> Callable[[Dict[str, Rows]], bytes]:
    return build_xlsx


@pytest.fixture
def grid() -> Callable[[Dict[str, Rows]], WorkbookGrid]:
    return build_grid


@pytest.fixture
def smart_sheets() -> Dict[str, List[List[Any]]]:
    """Smart template, 4 declared periods, data in the first 3."""
    info = [[None]] * 6 + [
        [None, "Número de Períodos:", 4],
        [None, "Tipo de Período:", "Anos"],
    ]
    drivers = [
        SMART_HEADER_4,
        ["revenue", "Receita", "R$", "Sim", 100_000, 110_000, 120_000, None],
        ["grossMarginPercentage", "Margem", "%", "Sim", 40, 41, 42, None],
        ["openingCash", "Caixa", "R$", "Sim", 5_000, "[N/A]", "[N/A]", "[N/A]"],
        ["initialEquity", "PL", "R$", "Sim", 50_000, None, None, None],
        ["notAField", "?", "R$", "Não", 1, 2, 3],
    ]
    pl = [
        SMART_HEADER_4,
        ["override_netProfit", "Lucro Líquido", "R$", "Não", 15_000, None, None, None],
    ]
    return {
        "📋 Instruções": [list(r) for r in info],
        "✅ Drivers": drivers,
        "🔧 Overrides DRE": pl,
    }
