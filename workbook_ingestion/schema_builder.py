"""
Result Builder.

Assembles the final ``IngestionResult`` and serialises it for downstream
consumers: JSON for the HTTP API, CSV (one row per field, one column per
period) for spreadsheets, and an optional pandas DataFrame.
"""

from __future__ import annotations

import csv
import json
from io import StringIO
from typing import Any, List, Optional

from workbook_ingestion.logging_setup import get_logger
from workbook_ingestion.schema import (
    IngestionResult,
    NotApplicable,
    PeriodDataset,
    QualityReport,
    WorkbookStructure,
)

logger = get_logger("schema_builder")


def _cell_text(value: Any) -> Any:
    if isinstance(value, NotApplicable):
        return value.value
    return "" if value is None else value


class ResultBuilder:
    """Builds and serialises ``IngestionResult`` objects."""

    @staticmethod
    def build(
        dataset: PeriodDataset,
        structure: WorkbookStructure,
        actual_period_count: int,
        quality: QualityReport,
        period_type: Optional[str] = None,
        recommendations: Optional[List[str]] = None,
        warnings: Optional[List[str]] = None,
    ) -> IngestionResult:
        """Assemble the final ``IngestionResult``; the dataset is frozen here."""
        return IngestionResult(
            dataset=dataset.freeze(),
            structure=structure,
            actual_period_count=actual_period_count,
            quality=quality,
            period_type=period_type,
            recommendations=list(recommendations or []),
            warnings=list(warnings or []),
        )

    @staticmethod
    def to_json(result: IngestionResult, indent: int = 2) -> str:
        """Serialise an ``IngestionResult`` to a JSON string."""
        return json.dumps(result.to_dict(), indent=indent, ensure_ascii=False)

    @staticmethod
    def to_csv_string(result: IngestionResult) -> str:
        """Serialise the period values to CSV text.

        Columns are ``field_key``, ``label``, ``group`` and one
        ``period_N`` column per period.  ``N/A`` marks not-applicable
        cells; missing values are blank.
        """
        dataset = result.dataset
        buf = StringIO()
        writer = csv.writer(buf)
        writer.writerow(
            ["field_key", "label", "group"]
            + [f"period_{i + 1}" for i in range(len(dataset))]
        )
        for key, definition in dataset.registry.items():
            writer.writerow(
                [key, definition.label, definition.group.value]
                + [_cell_text(record[key]) for record in dataset]
            )
        return buf.getvalue()

    @staticmethod
    def to_dataframe(result: IngestionResult) -> Any:
        """Return the period values as a ``pandas.DataFrame``.

        Rows are periods (``period_1`` …), columns are field keys.
        ``NOT_APPLICABLE`` becomes the string ``"N/A"``; missing values
        become ``None``.
        """
        try:
            import pandas as pd
        except ImportError as exc:
            raise ImportError(
                "pandas is required to use to_dataframe "
                "(install the 'dataframe' extra)"
            ) from exc

        records = result.dataset.to_list()
        index = [f"period_{i + 1}" for i in range(len(records))]
        df = pd.DataFrame.from_records(records, index=index, columns=list(result.dataset.registry))
        logger.debug("Built DataFrame with shape %s", df.shape)
        return df
