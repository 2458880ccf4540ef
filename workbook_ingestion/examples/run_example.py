#!/usr/bin/env python3
"""
Example: Workbook Ingestion Demo.

Ingests the workbook given on the command line, or a small smart template
built in memory when no path is given, and prints the full result.

Run from the project root:
    python -m workbook_ingestion.examples.run_example [workbook.xlsx]
"""

from __future__ import annotations

import logging
import sys
from io import BytesIO
from pathlib import Path

# Ensure the project root is on sys.path when run as a script
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

import openpyxl

from workbook_ingestion.config import PipelineConfig
from workbook_ingestion.errors import IngestionError
from workbook_ingestion.pipeline import WorkbookIngestionPipeline
from workbook_ingestion.schema_builder import ResultBuilder


# ======================================================================
# Helpers
# ======================================================================

def print_section(title: str) -> None:
    width = 72
    print("\n" + "=" * width)
    print(f"  {title}")
    print("=" * width)


def build_demo_workbook() -> bytes:
    """A three-period smart template with one P&L override."""
    wb = openpyxl.Workbook()
    info = wb.active
    info.title = "📋 Instruções"
    info["B7"], info["C7"] = "Número de Períodos:", 3
    info["B8"], info["C8"] = "Tipo de Período:", "Anos"

    header = ["Campo", "Descrição", "Tipo", "Obrigatório",
              "Período 1 (Ano)", "Período 2 (Ano)", "Período 3 (Ano)",
              "Notas/Instruções Adicionais"]

    drivers = wb.create_sheet("✅ Drivers")
    drivers.append(header)
    drivers.append(["revenue", "Receita", "R$", "Sim", 1_000_000, 1_150_000, 1_300_000])
    drivers.append(["grossMarginPercentage", "Margem Bruta %", "%", "Sim", 42, 43, 44])
    drivers.append(["operatingExpenses", "SG&A", "R$", "Sim", 250_000, 270_000, 290_000])
    drivers.append(["openingCash", "Caixa Inicial", "R$", "Sim", 80_000, "[N/A]", "[N/A]"])
    drivers.append(["initialEquity", "PL Inicial", "R$", "Sim", 400_000, "[N/A]", "[N/A]"])
    drivers.append(["incomeTaxRatePercentage", "IR %", "%", "Não", 34, 34, 34])

    pl = wb.create_sheet("🔧 Overrides DRE")
    pl.append(header)
    pl.append(["override_netProfit", "Lucro Líquido", "R$", "Não", 95_000])

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


# ======================================================================
# Main
# ======================================================================

def main() -> int:
    pipeline = WorkbookIngestionPipeline(PipelineConfig(log_level=logging.WARNING))

    try:
        if len(sys.argv) > 1:
            print_section(f"Ingesting {sys.argv[1]}")
            result = pipeline.ingest_file(sys.argv[1])
        else:
            print_section("Ingesting built-in demo workbook")
            result = pipeline.ingest_bytes(build_demo_workbook())
    except IngestionError as exc:
        print(f"  ✖ {exc.kind.value}: {exc.message}")
        return 1

    print(ResultBuilder.to_json(result))

    print_section("Summary")
    print(f"  Variant          : {result.variant.value}")
    print(f"  Periods          : {result.actual_period_count} of {result.declared_period_count}")
    print(f"  Period type      : {result.period_type}")
    print(f"  Quality score    : {result.quality.quality_score}")
    for note in result.recommendations:
        print(f"  → {note}")
    for warning in result.warnings:
        print(f"  ⚠ {warning}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
