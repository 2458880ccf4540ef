"""
Tests for the Flask JSON API.
"""

from __future__ import annotations

from io import BytesIO

import pytest

from app import app as flask_app
from workbook_ingestion.schema import FIELD_REGISTRY


@pytest.fixture
def client():
    flask_app.config["TESTING"] = True
    with flask_app.test_client() as client:
        yield client


def _upload(client, data: bytes, filename: str = "modelo.xlsx", **form):
    form["file"] = (BytesIO(data), filename)
    return client.post("/api/ingest", data=form, content_type="multipart/form-data")


# ======================================================================
# /api/ingest
# ======================================================================

class TestIngest:
    def test_success(self, client, xlsx, smart_sheets) -> None:
        resp = _upload(client, xlsx(smart_sheets))
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["variant"] == "smart_adaptive"
        assert body["actual_period_count"] == 3
        assert body["periods"][1]["openingCash"] == "N/A"
        assert body["filename"] == "modelo.xlsx"

    def test_period_type_form_field(self, client, xlsx) -> None:
        data = xlsx({"S": [["Descrição", "2023"], ["revenue", 1]]})
        body = _upload(client, data, period_type="meses").get_json()
        assert body["period_type"] == "meses"

    def test_missing_file(self, client) -> None:
        resp = client.post("/api/ingest", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_wrong_extension(self, client) -> None:
        resp = _upload(client, b"a,b", filename="data.csv")
        assert resp.status_code == 400

    def test_corrupt_workbook(self, client) -> None:
        resp = _upload(client, b"not a workbook")
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "unreadable_workbook"

    def test_empty_workbook(self, client, xlsx) -> None:
        resp = _upload(client, xlsx({"Vazia": []}))
        assert resp.status_code == 422
        assert resp.get_json()["kind"] == "no_usable_worksheet"


# ======================================================================
# Metadata endpoints
# ======================================================================

class TestMetadata:
    def test_fields(self, client) -> None:
        fields = client.get("/api/fields").get_json()["fields"]
        assert [f["key"] for f in fields] == list(FIELD_REGISTRY)
        opening = next(f for f in fields if f["key"] == "openingCash")
        assert opening["first_period_only"] is True

    def test_health(self, client) -> None:
        body = client.get("/api/health").get_json()
        assert body["status"] == "online"
