"""Tests for the chunked CSV serializer."""

from __future__ import annotations

from datetime import datetime

import pytest

from worksheet_export.export.csv_writer import csv_filename, export_csv, iter_csv_chunks
from worksheet_export.export.models import ExportConfig, ExportSheet, HeaderRowSetting
from worksheet_export.pivot import process_pivot

NOW = datetime(2024, 3, 5, 9, 30)

SALES_ROWS = [
    {"Region": "East", "Product": "A", "Sales": 100},
    {"Region": "East", "Product": "B", "Sales": 200},
    {"Region": "West", "Product": "A", "Sales": 50},
]


def _config(**overrides) -> ExportConfig:
    data = {
        "worksheet": "Sales",
        "workbookName": "Q1",
        "exportMode": "datadump",
        "groupColumns": [{"id": "Region"}],
        "pivotColumns": [{"id": "Product"}],
        "valueColumns": [{"id": "Sales"}],
    }
    data.update(overrides)
    return ExportConfig.model_validate(data)


def _sheet(rows=SALES_ROWS, **overrides) -> ExportSheet:
    config = _config(**overrides)
    result = process_pivot(
        rows, config.group_columns, config.pivot_columns, config.value_columns, config.totals,
    )
    return ExportSheet(config=config, result=result)


async def _text(sheet, **kwargs) -> str:
    _, content = await export_csv(sheet, now=NOW, **kwargs)
    return content.decode("utf-8")


class TestCsvLayout:
    @pytest.mark.asyncio
    async def test_basic_document(self):
        text = await _text(_sheet())
        assert text == ",A,B\nRegion,Sales,Sales\nEast,100,200\nWest,50,\n"

    @pytest.mark.asyncio
    async def test_custom_header_lines(self):
        sheet = _sheet(headerRowSettings=[{"type": "text", "text": "Sales Report"}])
        text = await _text(sheet)
        assert text.startswith("Sales Report\n\n,A,B\n")

    @pytest.mark.asyncio
    async def test_quoting(self):
        rows = [{"Region": "Boston, MA", "Product": "A", "Sales": 1}]
        text = await _text(_sheet(rows))
        assert '"Boston, MA",1' in text

    @pytest.mark.asyncio
    async def test_merged_cells_render_once(self):
        rows = [
            {"Region": "East", "City": "Boston", "Sales": 1},
            {"Region": "East", "City": "NYC", "Sales": 2},
        ]
        sheet = _sheet(rows, groupColumns=[{"id": "Region"}, {"id": "City"}], pivotColumns=[])
        text = await _text(sheet)
        assert text == "Region,City,Sales\nEast,Boston,1\n,NYC,2\n"

    @pytest.mark.asyncio
    async def test_total_row(self):
        sheet = _sheet(showColumnTotals=True, columnTotalsLabel="All")
        lines = (await _text(sheet)).splitlines()
        assert lines[-1] == "All,,"

    @pytest.mark.asyncio
    async def test_column_span_continuations_blank(self):
        rows = [{"Region": "East", "Product": "A", "Sales": 1, "Units": 2}]
        sheet = _sheet(rows, valueColumns=[{"id": "Sales"}, {"id": "Units"}])
        lines = (await _text(sheet)).splitlines()
        assert lines[0] == ",A,"
        assert lines[1] == "Region,Sales,Units"

    @pytest.mark.asyncio
    async def test_label_row_without_header_rows(self):
        sheet = _sheet(pivotColumns=[], valueColumns=[])
        lines = (await _text(sheet)).splitlines()
        assert lines[0] == "Region"
        assert lines[1:] == ["East", "West"]


class TestCsvChunks:
    @pytest.mark.asyncio
    async def test_chunking(self):
        chunks = [c async for c in iter_csv_chunks(_sheet(), chunk_size=1, now=NOW)]
        assert chunks == [",A,B\nRegion,Sales,Sales\n", "East,100,200\n", "West,50,\n"]

    @pytest.mark.asyncio
    async def test_default_chunk_size(self):
        chunks = [c async for c in iter_csv_chunks(_sheet(), now=NOW)]
        assert len(chunks) == 2

    @pytest.mark.asyncio
    async def test_custom_lines_separate_chunks(self):
        sheet = _sheet(headerRowSettings=[HeaderRowSetting(type="text", text="Title").model_dump()])
        chunks = [c async for c in iter_csv_chunks(sheet, now=NOW)]
        assert chunks[:2] == ["Title\n", "\n"]


class TestCsvFilename:
    def test_filename(self):
        assert csv_filename(_sheet(), NOW) == "Q1_Sales_2024-03-05.csv"

    def test_worksheet_name_preferred(self):
        assert csv_filename(_sheet(worksheetName="Summary"), NOW) == "Q1_Summary_2024-03-05.csv"

    def test_default_workbook(self):
        assert csv_filename(_sheet(workbookName=None), NOW) == "Report_Sales_2024-03-05.csv"
