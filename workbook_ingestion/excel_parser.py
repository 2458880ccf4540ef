"""
Excel Workbook Reader.

Opens an ``.xlsx`` workbook from a byte buffer or a path and copies every
worksheet into an in-memory grid of tagged cells (see
``workbook_ingestion.normalizer.RawCell``).  Everything after this module
works on the grid, never on openpyxl objects.

The file is loaded twice by openpyxl: once with formulas and once with the
cached values Excel stored at last save.  A formula cell therefore carries
both its text and its cached numeric result.
"""

from __future__ import annotations

import zipfile
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Iterator, List, Optional, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.formula import ArrayFormula

from workbook_ingestion.errors import IngestionError, IngestionErrorKind
from workbook_ingestion.logging_setup import get_logger
from workbook_ingestion.normalizer import EMPTY_CELL, RawCell, classify, formula_cell

logger = get_logger("excel_parser")


@dataclass
class SheetGrid:
    """One worksheet as a list of rows of ``RawCell``.

    Trailing empty rows are dropped; rows are ragged (short rows simply end
    early).  ``cell`` returns ``EMPTY_CELL`` outside the populated area.
    """

    name: str
    rows: List[List[RawCell]] = field(default_factory=list)

    def cell(self, row: int, col: int) -> RawCell:
        if row < 0 or col < 0 or row >= len(self.rows):
            return EMPTY_CELL
        r = self.rows[row]
        return r[col] if col < len(r) else EMPTY_CELL

    def row(self, index: int) -> List[RawCell]:
        return self.rows[index] if 0 <= index < len(self.rows) else []

    @property
    def header(self) -> List[RawCell]:
        return self.row(0)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return max((len(r) for r in self.rows), default=0)

    @property
    def has_data(self) -> bool:
        return any(not c.is_empty for r in self.rows for c in r)

    def data_rows(self, start: int = 1) -> Iterator[tuple[int, List[RawCell]]]:
        """Yield ``(index, row)`` for rows after the header."""
        for idx in range(start, len(self.rows)):
            yield idx, self.rows[idx]


@dataclass
class WorkbookGrid:
    """All worksheets of one workbook, in workbook order."""

    sheets: List[SheetGrid] = field(default_factory=list)

    @property
    def sheet_names(self) -> List[str]:
        return [s.name for s in self.sheets]

    def get(self, name: Optional[str]) -> Optional[SheetGrid]:
        if name is None:
            return None
        for sheet in self.sheets:
            if sheet.name == name:
                return sheet
        return None

    def first_non_empty(self) -> Optional[SheetGrid]:
        for sheet in self.sheets:
            if sheet.has_data:
                return sheet
        return None


def _is_formula(value: Any) -> bool:
    if isinstance(value, ArrayFormula):
        return True
    return isinstance(value, str) and value.startswith("=") and len(value) > 1


def _trim(rows: List[List[RawCell]]) -> List[List[RawCell]]:
    """Drop trailing empty cells per row and trailing empty rows."""
    trimmed: List[List[RawCell]] = []
    for row in rows:
        end = len(row)
        while end > 0 and row[end - 1].is_empty:
            end -= 1
        trimmed.append(row[:end])
    while trimmed and not trimmed[-1]:
        trimmed.pop()
    return trimmed


class ExcelParser:
    """Read xlsx workbooks into ``WorkbookGrid`` objects."""

    def parse_bytes(self, data: bytes) -> WorkbookGrid:
        """Parse a workbook held in memory.

        Raises
        ------
        IngestionError
            ``UNREADABLE_WORKBOOK`` if the buffer is not a valid xlsx file.
        """
        if not data:
            raise IngestionError(
                IngestionErrorKind.UNREADABLE_WORKBOOK, "Workbook buffer is empty"
            )
        try:
            wb_formulas = openpyxl.load_workbook(BytesIO(data), data_only=False)
            wb_values = openpyxl.load_workbook(BytesIO(data), data_only=True)
        except (
            InvalidFileException,
            zipfile.BadZipFile,
            SyntaxError,  # malformed XML members (ElementTree and lxml ParseError)
            KeyError,
            OSError,
            TypeError,
            AttributeError,
            ValueError,
        ) as exc:
            raise IngestionError(
                IngestionErrorKind.UNREADABLE_WORKBOOK,
                f"Workbook could not be opened: {exc}",
            ) from exc

        try:
            grid = WorkbookGrid()
            for ws in wb_formulas.worksheets:
                cached_ws = wb_values[ws.title]
                grid.sheets.append(self._read_sheet(ws, cached_ws))
                logger.info(
                    "Read sheet %r (%d rows × %d cols)",
                    ws.title, ws.max_row, ws.max_column,
                )
        finally:
            wb_formulas.close()
            wb_values.close()

        logger.info("Workbook loaded with %d worksheet(s)", len(grid.sheets))
        return grid

    def parse_file(self, path: Union[str, Path]) -> WorkbookGrid:
        """Parse a workbook from disk."""
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise IngestionError(
                IngestionErrorKind.UNREADABLE_WORKBOOK,
                f"Workbook could not be read from {path}: {exc}",
            ) from exc
        return self.parse_bytes(data)

    @staticmethod
    def _read_sheet(ws: Any, cached_ws: Any) -> SheetGrid:
        rows: List[List[RawCell]] = []
        formula_rows = ws.iter_rows(values_only=True)
        value_rows = cached_ws.iter_rows(values_only=True)
        for f_row, v_row in zip(formula_rows, value_rows):
            cells: List[RawCell] = []
            for f_val, v_val in zip(f_row, v_row):
                if _is_formula(f_val):
                    text = f_val.text if isinstance(f_val, ArrayFormula) else f_val
                    cells.append(formula_cell(text, v_val))
                else:
                    cells.append(classify(f_val))
            rows.append(cells)
        return SheetGrid(name=ws.title, rows=_trim(rows))
