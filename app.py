"""
Workbook Ingestion HTTP API.

Thin Flask JSON surface over ``WorkbookIngestionPipeline``:

* ``POST /api/ingest``  multipart upload (``file``) plus optional
  ``period_type`` form field
* ``GET  /api/fields``  the field registry
* ``GET  /api/health``  liveness
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from flask import Flask, request
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename

from workbook_ingestion import __version__
from workbook_ingestion.config import PipelineConfig
from workbook_ingestion.errors import IngestionError, IngestionErrorKind
from workbook_ingestion.pipeline import WorkbookIngestionPipeline
from workbook_ingestion.schema import FIELD_REGISTRY

# -------------------------------------------------------
# App Setup
# -------------------------------------------------------

app = Flask(__name__)

app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"xlsx", "xlsm"}

ERROR_STATUS = {
    IngestionErrorKind.UNREADABLE_WORKBOOK: 400,
    IngestionErrorKind.NO_USABLE_WORKSHEET: 422,
}

# -------------------------------------------------------
# Pipeline Setup
# -------------------------------------------------------

pipeline = WorkbookIngestionPipeline(
    config=PipelineConfig(log_level=logging.WARNING)
)

# -------------------------------------------------------
# Helpers
# -------------------------------------------------------

def allowed_file(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def error_response(message: str, status: int, kind: str = "bad_request") -> Tuple[Dict[str, Any], int]:
    return {"success": False, "error": message, "kind": kind}, status


@app.errorhandler(RequestEntityTooLarge)
def too_large(_exc: RequestEntityTooLarge):
    return error_response("Upload exceeds the 16 MB limit", 413, "too_large")


# -------------------------------------------------------
# API
# -------------------------------------------------------

@app.route("/api/ingest", methods=["POST"])
def api_ingest():
    if "file" not in request.files:
        return error_response("No file uploaded", 400)

    file = request.files["file"]

    if file.filename == "":
        return error_response("No file selected", 400)

    if not allowed_file(file.filename):
        return error_response(
            f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}", 400
        )

    filename = secure_filename(file.filename)
    period_type = request.form.get("period_type") or None

    try:
        result = pipeline.ingest_bytes(file.read(), expected_period_type=period_type)
    except IngestionError as exc:
        logger.warning("Rejected upload %s: %s", filename, exc.message)
        return error_response(exc.message, ERROR_STATUS[exc.kind], exc.kind.value)

    logger.info(
        "Ingested %s: variant=%s periods=%d score=%d",
        filename,
        result.variant.value,
        result.actual_period_count,
        result.quality.quality_score,
    )
    body = result.to_dict()
    body["success"] = True
    body["filename"] = filename
    return body, 200


@app.route("/api/fields", methods=["GET"])
def api_fields():
    """List every registry field in canonical order."""
    return {
        "fields": [
            {
                "key": d.key,
                "label": d.label,
                "value_type": d.value_type.value,
                "group": d.group.value,
                "required": d.required,
                "first_period_only": d.first_period_only,
                "is_override": d.is_override,
                "note": d.note,
            }
            for d in FIELD_REGISTRY.values()
        ]
    }, 200


@app.route("/api/health", methods=["GET"])
def api_health():
    return {
        "status": "online",
        "version": __version__,
        "api": "/api/ingest",
        "methods": ["POST"],
    }, 200


if __name__ == "__main__":
    print("=" * 60)
    print("Workbook Ingestion API")
    print("http://localhost:5000")
    print("=" * 60)

    app.run(host="0.0.0.0", port=5000, debug=True)
