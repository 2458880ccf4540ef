"""
Cell Normalization Layer.

Workbook cells arrive as an untyped union (number, text, date, boolean,
formula with a cached result, error code, empty).  This module tags each
cell with its kind at the reading boundary and resolves it to exactly one
of the three dataset values:

* a ``float``
* ``NOT_APPLICABLE``: the cell holds an explicit "not applicable" marker
* ``None``: not provided (empty, or content that cannot be coerced)

String coercion (in order):
1. Strip whitespace and currency symbols (``R$``, ``$``, ``€`` ...)
2. Parenthetical negatives ``(5000)`` → ``-5000``
3. Brazilian grouping ``1.234.567,89`` → ``1234567.89``
4. Thousands separators (commas) removed
5. Trailing percent sign stripped

Header texts are normalised separately (lowercase, accents kept) so that
marker lookups stay case-insensitive.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Iterable, Optional

from workbook_ingestion.logging_setup import get_logger
from workbook_ingestion.schema import NOT_APPLICABLE, FieldValue

logger = get_logger("normalizer")


class CellKind(str, Enum):
    EMPTY = "empty"
    NUMBER = "number"
    TEXT = "text"
    DATE = "date"
    BOOLEAN = "boolean"
    FORMULA = "formula"
    ERROR = "error"


_ERROR_CODES = frozenset({
    "#NULL!", "#DIV/0!", "#VALUE!", "#REF!", "#NAME?", "#NUM!", "#N/A",
    "#GETTING_DATA", "#SPILL!", "#CALC!",
})


@dataclass(frozen=True)
class RawCell:
    """A tagged workbook cell.

    For ``FORMULA`` cells ``value`` is the cached result stored in the file
    (``None`` when the workbook was never recalculated) and ``formula``
    holds the formula text.
    """

    kind: CellKind
    value: Any = None
    formula: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY

    @property
    def text(self) -> str:
        """Display-ish text of the (resolved) value."""
        if self.value is None:
            return ""
        return str(self.value).strip()


EMPTY_CELL = RawCell(CellKind.EMPTY)


def classify(value: Any) -> RawCell:
    """Tag a plain Python value read from a worksheet."""
    if value is None:
        return EMPTY_CELL
    if isinstance(value, bool):
        return RawCell(CellKind.BOOLEAN, value)
    if isinstance(value, (int, float)):
        return RawCell(CellKind.NUMBER, value)
    if isinstance(value, (datetime, date, time, timedelta)):
        return RawCell(CellKind.DATE, value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return EMPTY_CELL
        if stripped.upper() in _ERROR_CODES:
            return RawCell(CellKind.ERROR, stripped)
        return RawCell(CellKind.TEXT, value)
    # Anything else (rich text, objects) degrades to its text
    return RawCell(CellKind.TEXT, str(value))


def formula_cell(formula: str, cached: Any) -> RawCell:
    """Tag a formula cell, keeping its cached result."""
    inner = classify(cached)
    return RawCell(CellKind.FORMULA, inner.value, formula=formula)


def normalize_header(text: Any) -> str:
    """Lowercase, NFC-normalised, whitespace-collapsed form of a header."""
    if text is None:
        return ""
    s = unicodedata.normalize("NFC", str(text)).strip().lower()
    return re.sub(r"\s+", " ", s)


def contains_any(text: Any, fragments: Iterable[str]) -> bool:
    norm = normalize_header(text)
    return bool(norm) and any(normalize_header(f) in norm for f in fragments)


class CellNormalizer:
    """Resolve tagged cells to dataset values.  All methods are pure."""

    # Currency symbols / prefixes to strip from values
    _CURRENCY_RE = re.compile(r"(R\$|US\$|[₹$€£¥])")

    # Parenthetical negative: ``(1234)`` → ``-1234``
    _PAREN_NEG_RE = re.compile(r"^\((.+)\)$")

    # Brazilian grouping: dots for thousands, comma for decimals
    _BR_NUMBER_RE = re.compile(r"^-?\d{1,3}(\.\d{3}){2,}$|^-?\d{1,3}(\.\d{3})+,\d+$")

    # Comma thousands grouping: ``1,234,567.89``
    _COMMA_GROUPED_RE = re.compile(r"^-?\d{1,3}(,\d{3})+(\.\d+)?$")

    # Single decimal comma: ``12,5``
    _DECIMAL_COMMA_RE = re.compile(r"^-?\d+,\d+$")

    def __init__(self, not_applicable_markers: Iterable[str] = ("[N/A]",)) -> None:
        self._na_markers = frozenset(normalize_header(m) for m in not_applicable_markers)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def is_not_applicable(self, cell: RawCell) -> bool:
        if cell.kind not in (CellKind.TEXT, CellKind.FORMULA):
            return False
        return isinstance(cell.value, str) and normalize_header(cell.value) in self._na_markers

    def resolve(self, cell: RawCell) -> FieldValue:
        """Return a float, ``NOT_APPLICABLE`` or ``None`` for one cell."""
        if self.is_not_applicable(cell):
            return NOT_APPLICABLE
        return self.to_number(cell)

    def to_number(self, cell: RawCell) -> Optional[float]:
        """Numeric value of a cell, unwrapping formula results."""
        kind = cell.kind
        value = cell.value
        if kind is CellKind.FORMULA:
            if value is None:
                logger.debug("Formula %r has no cached result", cell.formula)
                return None
            kind = classify(value).kind

        if kind is CellKind.NUMBER:
            result = float(value)
            if result != result or result in (float("inf"), float("-inf")):
                return None
            return result
        if kind is CellKind.TEXT:
            return self.parse_number(str(value))
        return None

    def is_numeric(self, cell: RawCell) -> bool:
        return self.to_number(cell) is not None

    def has_data(self, cell: RawCell) -> bool:
        """True for numeric-coercible content that is not a N/A marker."""
        return not self.is_not_applicable(cell) and self.is_numeric(cell)

    def parse_number(self, raw: str) -> Optional[float]:
        """Attempt to parse a numeric financial value from text."""
        text = raw.strip()
        if not text:
            return None

        text = self._CURRENCY_RE.sub("", text).strip()

        m = self._PAREN_NEG_RE.match(text)
        if m:
            text = "-" + m.group(1).strip()

        if text.endswith("%"):
            text = text[:-1].strip()

        text = text.replace(" ", "").replace("\u00a0", "")
        if self._BR_NUMBER_RE.match(text):
            text = text.replace(".", "").replace(",", ".")
        elif self._COMMA_GROUPED_RE.match(text):
            text = text.replace(",", "")
        elif self._DECIMAL_COMMA_RE.match(text):
            text = text.replace(",", ".")

        try:
            value = float(text)
        except ValueError:
            logger.debug("Cannot parse numeric value from: %r", raw)
            return None
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return value
