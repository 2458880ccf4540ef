"""
Workbook Structure Detector.

Classifies an opened workbook into one of the known template families and
decides which sheet plays which role:

* **smart_adaptive**: sheet names carry both the instructions marker and
  the drivers marker.  Override sheets are found by statement-section
  substrings and may be absent.
* **basic_drivers**: the first sheet's header row contains one of the
  legacy header labels.  Single data sheet.
* **generic**: nothing recognised.  The first non-empty sheet is used
  best-effort; failure, if any, shows up later as zero extracted rows.

Only a workbook with no row data on any sheet is fatal here.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from workbook_ingestion.config import DetectionConfig
from workbook_ingestion.errors import IngestionError, IngestionErrorKind, WarningLog
from workbook_ingestion.excel_parser import SheetGrid, WorkbookGrid
from workbook_ingestion.logging_setup import get_logger
from workbook_ingestion.normalizer import contains_any
from workbook_ingestion.schema import SheetRole, TemplateVariant, WorkbookStructure

logger = get_logger("structure_detector")


class StructureDetector:
    """Detect the template variant and sheet roles of a workbook."""

    def __init__(self, config: Optional[DetectionConfig] = None) -> None:
        self._config = config or DetectionConfig()

    def detect(
        self, workbook: WorkbookGrid, warnings: Optional[WarningLog] = None
    ) -> WorkbookStructure:
        warnings = warnings if warnings is not None else WarningLog()

        if workbook.first_non_empty() is None:
            raise IngestionError(
                IngestionErrorKind.NO_USABLE_WORKSHEET,
                "No worksheet in the workbook contains any data",
            )

        instructions = self._find_sheet(workbook, self._config.instructions_markers)
        drivers = self._find_sheet(
            workbook, self._config.drivers_markers, exclude=(instructions,)
        )

        # The instructions role exists only in the smart template
        roles: Dict[SheetRole, str] = {}
        if instructions is not None and drivers is not None:
            roles[SheetRole.INSTRUCTIONS] = instructions.name
            roles[SheetRole.DRIVERS] = drivers.name
            roles.update(self._find_override_sheets(workbook, exclude=(instructions, drivers)))
            if not drivers.has_data:
                warnings.add(f"Drivers sheet '{drivers.name}' contains no data")
            variant = TemplateVariant.SMART_ADAPTIVE
        elif self._has_legacy_header(workbook.sheets[0]):
            roles[SheetRole.DRIVERS] = workbook.sheets[0].name
            variant = TemplateVariant.BASIC_LEGACY
        else:
            data_sheet = self._first_data_sheet(workbook, instructions)
            roles[SheetRole.DRIVERS] = data_sheet.name
            variant = TemplateVariant.GENERIC
            warnings.add(
                "Workbook layout not recognised; reading sheet "
                f"'{data_sheet.name}' with the generic strategy"
            )

        structure = WorkbookStructure(variant=variant, sheet_roles=roles)
        logger.info(
            "Detected variant %s, roles=%s",
            variant.value,
            {r.value: n for r, n in structure.sheet_roles.items()},
        )
        return structure

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _find_sheet(
        workbook: WorkbookGrid,
        markers: Tuple[str, ...],
        exclude: Tuple[Optional[SheetGrid], ...] = (),
    ) -> Optional[SheetGrid]:
        for sheet in workbook.sheets:
            if any(sheet is e for e in exclude):
                continue
            if contains_any(sheet.name, markers):
                return sheet
        return None

    def _find_override_sheets(
        self, workbook: WorkbookGrid, exclude: Tuple[SheetGrid, ...]
    ) -> Dict[SheetRole, str]:
        sections = (
            (SheetRole.OVERRIDE_PL, self._config.override_pl_markers),
            (SheetRole.OVERRIDE_BS, self._config.override_bs_markers),
            (SheetRole.OVERRIDE_CF, self._config.override_cf_markers),
        )
        found: Dict[SheetRole, str] = {}
        for sheet in workbook.sheets:
            if any(sheet is e for e in exclude):
                continue
            for role, markers in sections:
                if role not in found and contains_any(sheet.name, markers):
                    found[role] = sheet.name
                    break
        for role, _ in sections:
            if role not in found:
                logger.debug("Optional override sheet for %s not present", role.value)
        return found

    def _has_legacy_header(self, sheet: SheetGrid) -> bool:
        return any(
            contains_any(cell.text, self._config.legacy_header_patterns)
            for cell in sheet.header
            if isinstance(cell.value, str)
        )

    @staticmethod
    def _first_data_sheet(
        workbook: WorkbookGrid, instructions: Optional[SheetGrid]
    ) -> SheetGrid:
        with_data = [s for s in workbook.sheets if s.has_data]
        if not with_data:
            raise IngestionError(
                IngestionErrorKind.NO_USABLE_WORKSHEET,
                "No worksheet in the workbook contains any data",
            )
        for sheet in with_data:
            if sheet is not instructions:
                return sheet
        # Only the instructions sheet has data
        return with_data[0]
