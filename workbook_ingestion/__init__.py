"""
Workbook Ingestion: adaptive spreadsheet ingestion engine.

Reads financial-planning workbooks (smart adaptive templates, basic legacy
driver sheets or unrecognised layouts) into a typed per-period dataset,
with override precedence, a completeness score and advisory notes.

Nothing is guessed silently: unknown rows are skipped, uncoercible cells
become "not provided", and every structural fallback is reported as a
warning on the result.
"""

__version__ = "1.0.0"

from workbook_ingestion.errors import IngestionError, IngestionErrorKind  # noqa: F401
from workbook_ingestion.pipeline import WorkbookIngestionPipeline  # noqa: F401
