"""Pivot preview and export routes.

Sheets arrive either with their rows inline or by worksheet name, in which
case rows (and the GC_/RC_ total worksheets) are read from the summary data
sent alongside the request.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from worksheet_export.export.manager import ZIP_MEDIA_TYPE, export_data, zip_files
from worksheet_export.export.models import ExportConfig, ExportSheet, FilterValue
from worksheet_export.export.number_format import format_date_value, format_number_value
from worksheet_export.ingestion.datasets import InMemorySource, fetch_datasets
from worksheet_export.ingestion.summary_data import SummaryData
from worksheet_export.pivot import ColumnSpec, PivotResult, process_pivot
from worksheet_export.pivot.formatting import to_number

logger = logging.getLogger(__name__)

router = APIRouter(tags=["export"])


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SummaryPayload(_RequestModel):
    columns: list[str]
    data: list[list[Any]] = Field(default_factory=list)


class SheetRequest(_RequestModel):
    config: ExportConfig
    rows: list[dict[str, Any]] = Field(default_factory=list)
    column_totals_rows: list[dict[str, Any]] | None = None
    row_totals_rows: list[dict[str, Any]] | None = None
    filters: list[FilterValue] = Field(default_factory=list)
    fields: list[ColumnSpec] = Field(default_factory=list)
    sheet_name: str = ""


class PreviewRequest(SheetRequest):
    worksheets: dict[str, SummaryPayload] = Field(default_factory=dict)


class ExportRequest(_RequestModel):
    workbook_name: str | None = None
    sheets: list[SheetRequest] = Field(min_length=1)
    worksheets: dict[str, SummaryPayload] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _build_result(sheet: SheetRequest, worksheets: dict[str, SummaryPayload]) -> PivotResult:
    config = sheet.config
    rows, column_totals, row_totals = sheet.rows, sheet.column_totals_rows, sheet.row_totals_rows

    if not rows and worksheets:
        source = InMemorySource({name: SummaryData(p.columns, p.data) for name, p in worksheets.items()})
        try:
            datasets = await fetch_datasets(source, config.worksheet)
        except ValueError as exc:
            raise HTTPException(status_code=404, detail=str(exc))
        rows = datasets.main
        column_totals = column_totals or datasets.column_totals
        row_totals = row_totals or datasets.row_totals

    try:
        return process_pivot(
            rows,
            config.group_columns,
            config.pivot_columns,
            config.value_columns,
            config.totals,
            column_totals_rows=column_totals,
            row_totals_rows=row_totals,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _display(value: Any, column: ColumnSpec | None) -> str:
    if value is None:
        return ""
    if column is not None:
        if column.date_format and column.data_type in ("date", "datetime"):
            return format_date_value(value, column.date_format)
        if column.number_format and to_number(value) is not None:
            return format_number_value(value, column.number_format)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def serialize_result(result: PivotResult, value_columns: list[ColumnSpec]) -> dict:
    """JSON form of *result*, data cells carrying display strings."""

    def style(s):
        if s is None or s.is_empty:
            return None
        return {to_camel(k): v for k, v in s.to_dict().items()}

    width = len(value_columns)
    return {
        "headerRows": [
            [{"label": h.label, "colSpan": h.col_span, "isTotal": h.is_total, "style": style(h.style)} for h in row]
            for row in result.header_rows
        ],
        "rowHeaders": [
            [
                {
                    "value": c.value,
                    "rowSpan": c.row_span,
                    "colSpan": c.col_span,
                    "isVisible": c.is_visible,
                    "isTotal": c.is_total,
                    "style": style(c.style),
                }
                for c in row
            ]
            for row in result.row_headers
        ],
        "dataMatrix": [
            [
                {
                    "value": cell.value,
                    "display": _display(cell.value, value_columns[slot % width] if width else None),
                    "style": style(cell.style),
                }
                for slot, cell in enumerate(row)
            ]
            for row in result.data_matrix
        ],
        "rowCount": len(result.row_headers),
        "columnCount": result.data_width,
        "unmappedColumns": result.unmapped_columns,
    }


def _attachment(filename: str, content: bytes, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/pivot/preview")
async def preview_pivot(req: PreviewRequest) -> dict:
    """Compute the pivot for one sheet and return it for on-screen preview."""
    result = await _build_result(req, req.worksheets)
    return serialize_result(result, req.config.value_columns)


@router.post("/export")
async def export_sheets(req: ExportRequest) -> Response:
    """Export one or more sheets; several output files are zipped together."""
    sheets = []
    for index, sheet in enumerate(req.sheets):
        result = await _build_result(sheet, req.worksheets)
        sheets.append(
            ExportSheet(
                config=sheet.config,
                result=result,
                filters=sheet.filters,
                fields=sheet.fields,
                sheet_name=sheet.sheet_name or sheet.config.sheet_name or sheet.config.worksheet or f"Sheet{index + 1}",
            )
        )

    files = await export_data(sheets, req.workbook_name)
    if not files:
        raise HTTPException(status_code=400, detail="Nothing to export")
    if len(files) == 1:
        return _attachment(files[0].filename, files[0].content, files[0].media_type)

    workbook = req.workbook_name or "Export"
    bundle = zip_files([(f.filename, f.content) for f in files])
    logger.info("Bundled %d export files into one archive", len(files))
    return _attachment(f"{workbook}_Export.zip", bundle, ZIP_MEDIA_TYPE)
