"""Tests for export routing: xlsx for formatted sheets, csv/zip for data dumps."""

from __future__ import annotations

import io
import zipfile
from datetime import datetime

import pytest

from worksheet_export.export.manager import (
    CSV_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    ZIP_MEDIA_TYPE,
    export_data,
    zip_files,
)
from worksheet_export.export.models import ExportConfig, ExportSheet
from worksheet_export.pivot import process_pivot

NOW = datetime(2024, 3, 5, 9, 30)

ROWS = [
    {"Region": "East", "Sales": 100},
    {"Region": "West", "Sales": 50},
]


def _sheet(worksheet="Sales", mode="formatted") -> ExportSheet:
    config = ExportConfig.model_validate({
        "worksheet": worksheet,
        "workbookName": "Q1",
        "exportMode": mode,
        "groupColumns": [{"id": "Region"}],
        "valueColumns": [{"id": "Sales"}],
    })
    result = process_pivot(ROWS, config.group_columns, config.pivot_columns, config.value_columns)
    return ExportSheet(config=config, result=result, sheet_name=worksheet)


class TestExportData:
    @pytest.mark.asyncio
    async def test_formatted_only(self):
        files = await export_data([_sheet("Sales"), _sheet("Costs")], "Q1", NOW)
        assert len(files) == 1
        assert files[0].filename == "Q1_2024-03-05.xlsx"
        assert files[0].media_type == XLSX_MEDIA_TYPE
        assert files[0].metadata == {"sheets": 2}

    @pytest.mark.asyncio
    async def test_single_datadump(self):
        files = await export_data([_sheet(mode="datadump")], "Q1", NOW)
        assert [f.filename for f in files] == ["Q1_Sales_2024-03-05.csv"]
        assert files[0].media_type == CSV_MEDIA_TYPE
        assert files[0].content.decode("utf-8").startswith("Region,Sales\n")

    @pytest.mark.asyncio
    async def test_several_datadumps_zipped(self):
        files = await export_data([_sheet("Sales", "datadump"), _sheet("Costs", "datadump")], "Q1", NOW)
        assert len(files) == 1
        assert files[0].filename == "Q1_CSV_Export_2024-03-05.zip"
        assert files[0].media_type == ZIP_MEDIA_TYPE
        names = zipfile.ZipFile(io.BytesIO(files[0].content)).namelist()
        assert names == ["Q1_Sales_2024-03-05.csv", "Q1_Costs_2024-03-05.csv"]

    @pytest.mark.asyncio
    async def test_mixed(self):
        files = await export_data([_sheet("Sales"), _sheet("Costs", "datadump")], "Q1", NOW)
        assert [f.filename.rsplit(".", 1)[1] for f in files] == ["xlsx", "csv"]

    @pytest.mark.asyncio
    async def test_nothing_to_export(self):
        assert await export_data([], "Q1", NOW) == []


class TestZipFiles:
    def test_duplicate_names_made_unique(self):
        content = zip_files([("a.csv", b"1"), ("a.csv", b"2"), ("a.csv", b"3")])
        archive = zipfile.ZipFile(io.BytesIO(content))
        assert archive.namelist() == ["a.csv", "a (1).csv", "a (2).csv"]
        assert archive.read("a (1).csv") == b"2"
