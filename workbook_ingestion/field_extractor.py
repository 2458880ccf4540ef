"""
Field Extractor.

Reads one worksheet into per-period field values.  The leading cell of each
data row names the field; the period cells sit ``start_column`` onward.
Extraction is a pure transform: the sheet is never modified and nothing is
written to the dataset here (see ``workbook_ingestion.merger``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Collection, Dict, Iterator, Mapping, Optional, Tuple

from workbook_ingestion.excel_parser import SheetGrid
from workbook_ingestion.logging_setup import get_logger
from workbook_ingestion.normalizer import CellKind, CellNormalizer
from workbook_ingestion.schema import (
    FIELD_REGISTRY,
    NOT_APPLICABLE,
    FieldDefinition,
    FieldValue,
)
from workbook_ingestion.synonym_mapper import KeyResolver

logger = get_logger("field_extractor")


@dataclass
class SheetExtraction:
    """Values read from one sheet, keyed by ``(period_index, field_key)``."""

    sheet_name: str
    values: Dict[Tuple[int, str], FieldValue] = field(default_factory=dict)
    rows_matched: int = 0
    rows_skipped: int = 0

    def items(self) -> Iterator[Tuple[int, str, FieldValue]]:
        """Yield ``(period_index, key, value)`` in row order."""
        for (idx, key), value in self.values.items():
            yield idx, key, value

    @property
    def matched_keys(self) -> set[str]:
        return {key for _, key in self.values}


class FieldExtractor:
    """Extract registry fields from a worksheet.

    Parameters
    ----------
    resolver:
        Maps leading-cell text to registry keys.
    normalizer:
        Coerces cells to ``float`` / ``NOT_APPLICABLE`` / ``None``.
    registry:
        The field catalogue.
    """

    def __init__(
        self,
        resolver: Optional[KeyResolver] = None,
        normalizer: Optional[CellNormalizer] = None,
        registry: Mapping[str, FieldDefinition] = FIELD_REGISTRY,
    ) -> None:
        self._registry = registry
        self._resolver = resolver or KeyResolver(registry=registry)
        self._normalizer = normalizer or CellNormalizer()

    def extract(
        self,
        sheet: SheetGrid,
        allowed_keys: Collection[str],
        period_count: int,
        start_column: int,
    ) -> SheetExtraction:
        """Read ``period_count`` period cells for every recognised row.

        Parameters
        ----------
        sheet:
            The worksheet grid.
        allowed_keys:
            Field keys this sheet may populate; other keys are skipped.
        period_count:
            Number of period columns to read.
        start_column:
            Zero-based column index of period 1.

        Returns
        -------
        SheetExtraction
            A later row for the same key replaces earlier values, except
            that an empty cell never erases a value read before it.
        """
        allowed = set(allowed_keys)
        result = SheetExtraction(sheet_name=sheet.name)

        for row_idx, row in sheet.data_rows():
            if not row:
                continue
            key = self._row_key(row[0].value, row[0].kind)
            if key is None or key not in allowed:
                result.rows_skipped += 1
                continue

            definition = self._registry[key]
            result.rows_matched += 1
            for period_idx in range(period_count):
                if definition.first_period_only and period_idx > 0:
                    value: FieldValue = NOT_APPLICABLE
                else:
                    value = self._normalizer.resolve(
                        sheet.cell(row_idx, start_column + period_idx)
                    )
                slot = (period_idx, key)
                if value is None and result.values.get(slot) is not None:
                    continue
                result.values[slot] = value

        logger.info(
            "Sheet %r: %d field row(s) extracted, %d row(s) skipped",
            sheet.name, result.rows_matched, result.rows_skipped,
        )
        return result

    def _row_key(self, value: object, kind: CellKind) -> Optional[str]:
        if kind is not CellKind.TEXT or not isinstance(value, str):
            return None
        return self._resolver.resolve(value)
