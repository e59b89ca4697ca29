"""Tests for the preview and export HTTP endpoints."""

from __future__ import annotations

import io
import zipfile

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from worksheet_export.action.api import app

ROWS = [
    {"Region": "East", "Product": "A", "Sales": 1234.5},
    {"Region": "East", "Product": "B", "Sales": 200},
    {"Region": "West", "Product": "A", "Sales": 50},
]


def _config(**overrides) -> dict:
    config = {
        "worksheet": "Sales",
        "workbookName": "Q1",
        "groupColumns": [{"id": "Region"}],
        "pivotColumns": [{"id": "Product"}],
        "valueColumns": [{"id": "Sales", "numberFormat": {"decimalPlaces": 0}}],
    }
    config.update(overrides)
    return config


@pytest.fixture()
def client():
    with TestClient(app) as c:
        yield c


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestPreview:
    def test_inline_rows(self, client):
        resp = client.post("/pivot/preview", json={"config": _config(), "rows": ROWS})
        assert resp.status_code == 200
        body = resp.json()
        assert body["rowCount"] == 2
        assert body["columnCount"] == 2
        assert [h["label"] for h in body["headerRows"][0]] == ["A", "B"]
        assert body["dataMatrix"][0][0] == {"value": 1234.5, "display": "1,234", "style": None}
        assert body["dataMatrix"][1][1]["value"] is None
        assert body["dataMatrix"][1][1]["display"] == ""

    def test_styles_serialized(self, client):
        config = _config(valueColumns=[{
            "id": "Sales",
            "conditionalFormats": [{"type": "cellValue", "operator": ">", "value1": 1000, "style": {"bgColor": "#ff0000"}}],
        }])
        body = client.post("/pivot/preview", json={"config": config, "rows": ROWS}).json()
        assert body["dataMatrix"][0][0]["style"] == {"bgColor": "#ff0000"}

    def test_from_worksheets(self, client):
        payload = {
            "config": _config(showRowTotals=True),
            "worksheets": {
                "Sales": {"columns": ["Region", "Product", "Sales"], "data": [["East", "A", 10], ["West", "A", 5]]},
                "RC_Sales": {"columns": ["Region", "Sales"], "data": [["East", 10], ["West", 5]]},
            },
        }
        body = client.post("/pivot/preview", json=payload).json()
        assert [[c["value"] for c in row] for row in body["dataMatrix"]] == [[10, 10.0], [5, 5.0]]
        assert body["headerRows"][0][-1]["isTotal"] is True

    def test_missing_worksheet(self, client):
        payload = {
            "config": _config(worksheet="Nope"),
            "worksheets": {"Sales": {"columns": ["Region"], "data": [["East"]]}},
        }
        assert client.post("/pivot/preview", json=payload).status_code == 404

    def test_empty_rows(self, client):
        body = client.post("/pivot/preview", json={"config": _config()}).json()
        assert body["rowCount"] == 0
        assert body["headerRows"] == []

    def test_overlapping_columns(self, client):
        config = _config(pivotColumns=[{"id": "Region"}])
        assert client.post("/pivot/preview", json={"config": config, "rows": ROWS}).status_code == 400

    def test_invalid_rule(self, client):
        config = _config(valueColumns=[{"id": "Sales", "conditionalFormats": [{"type": "dataBar"}]}])
        assert client.post("/pivot/preview", json={"config": config, "rows": ROWS}).status_code == 422


class TestExport:
    def test_single_workbook(self, client):
        resp = client.post("/export", json={"workbookName": "Q1", "sheets": [{"config": _config(), "rows": ROWS}]})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/vnd.openxmlformats")
        assert ".xlsx" in resp.headers["content-disposition"]
        wb = load_workbook(io.BytesIO(resp.content))
        assert wb.sheetnames == ["Sales"]

    def test_single_csv(self, client):
        sheets = [{"config": _config(exportMode="datadump"), "rows": ROWS}]
        resp = client.post("/export", json={"workbookName": "Q1", "sheets": sheets})
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.text.splitlines()[2] == "East,1234.5,200"

    def test_csv_bundle(self, client):
        sheets = [
            {"config": _config(exportMode="datadump"), "rows": ROWS},
            {"config": _config(exportMode="datadump", worksheet="Costs"), "rows": ROWS},
        ]
        resp = client.post("/export", json={"workbookName": "Q1", "sheets": sheets})
        assert resp.headers["content-type"] == "application/zip"
        assert len(zipfile.ZipFile(io.BytesIO(resp.content)).namelist()) == 2

    def test_mixed_modes_zipped(self, client):
        sheets = [
            {"config": _config(), "rows": ROWS},
            {"config": _config(exportMode="datadump"), "rows": ROWS},
        ]
        resp = client.post("/export", json={"workbookName": "Q1", "sheets": sheets})
        assert resp.headers["content-type"] == "application/zip"
        assert 'filename="Q1_Export.zip"' in resp.headers["content-disposition"]
        names = zipfile.ZipFile(io.BytesIO(resp.content)).namelist()
        assert sorted(n.rsplit(".", 1)[1] for n in names) == ["csv", "xlsx"]

    def test_no_sheets(self, client):
        assert client.post("/export", json={"sheets": []}).status_code == 422
