"""Excel export — render pivot results into a styled openpyxl workbook.

Key features:
- One worksheet per exported dashboard sheet, unique titles
- Custom header lines merged across the table width
- Merged multi-level column headers and row-spanned row headers
- Conditional styles, number/date formats and icon sets on data cells
- Frozen panes below the headers and right of the row labels
"""

from __future__ import annotations

import io
import logging
import re
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from openpyxl import Workbook
from openpyxl.cell.cell import Cell
from openpyxl.formatting.rule import IconSetRule as ExcelIconSetRule
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from config.settings import settings
from worksheet_export.export.header_rows import build_header_lines
from worksheet_export.export.models import ExportSheet
from worksheet_export.export.number_format import excel_date_format, excel_number_format, parse_date
from worksheet_export.pivot.models import ColumnSpec, IconSetRule
from worksheet_export.pivot.result import CellStyle

logger = logging.getLogger(__name__)

_BORDER_COLOR = "FF808080"
_THIN = Side(style="thin", color=_BORDER_COLOR)
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_INVALID_TITLE_RE = re.compile(r"[\[\]:*?/\\]")
_DATE_LIKE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}|\d{2}/\d{2}/\d{4})")

_EXCEL_ICON_SETS = {
    "arrows": "3Arrows",
    "trafficLights": "3TrafficLights1",
    "flags": "3Flags",
    "shapes": "3Signs",
}


def css_to_argb(color: str | None) -> str | None:
    """``#abc`` / ``#aabbcc`` -> ``FFAABBCC``; anything else -> None."""
    if not color:
        return None
    match = _HEX_RE.match(color.strip())
    if not match:
        return None
    text = match.group(1)
    if len(text) == 3:
        text = "".join(c * 2 for c in text)
    return "FF" + text.upper()


def row_height(text: Any, default: float = 15, padding: float = 6) -> float:
    """Row height in points for a (possibly multi-line) label."""
    if not text:
        return default + padding
    lines = str(text).count("\n") + 1
    return max(default, default + (lines - 1) * 12) + padding


def _solid(argb: str) -> PatternFill:
    return PatternFill(fill_type="solid", fgColor=argb)


def _apply_cell_style(cell: Cell, style: CellStyle | None, bold: bool = False) -> None:
    font: dict[str, Any] = {"size": 10, "bold": bold}
    if style is not None:
        bg = css_to_argb(style.bg_color)
        if bg:
            cell.fill = _solid(bg)
        color = css_to_argb(style.font_color)
        if color:
            font["color"] = color
        if style.bold:
            font["bold"] = True
        if style.italic:
            font["italic"] = True
    cell.font = Font(**font)


def unique_title(existing: Sequence[str], wanted: str) -> str:
    """A valid worksheet title not yet in *existing*."""
    base = _INVALID_TITLE_RE.sub("_", wanted).strip() or "Sheet"
    base = base[:31]
    title, counter = base, 1
    while title in existing:
        suffix = f" ({counter})"
        title = base[: 31 - len(suffix)] + suffix
        counter += 1
    return title


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def _add_custom_headers(ws: Worksheet, sheet: ExportSheet, total_columns: int, row: int, now: datetime | None) -> int:
    settings_rows = sheet.config.header_row_settings
    lines = build_header_lines(settings_rows, sheet.filters, sheet.fields, "\n", now)
    for setting, content in zip(settings_rows, lines):
        cell = ws.cell(row=row, column=1, value=content)
        if total_columns > 1:
            ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=total_columns)
        cell.alignment = Alignment(horizontal=setting.text_align, vertical="center", wrap_text=True)
        cell.font = Font(bold=True, size=11, color=css_to_argb(setting.font_color) or "FF000000")
        bg = css_to_argb(setting.bg_color)
        if bg:
            cell.fill = _solid(bg)
        ws.row_dimensions[row].height = row_height(content)
        row += 1
    return row


def _style_header(cell: Cell, sheet: ExportSheet) -> None:
    fmt = sheet.config.pivot_header_format
    cell.font = Font(bold=True, size=10, color=css_to_argb(fmt.font_color) or "FF000000")
    cell.alignment = Alignment(horizontal=fmt.text_align, vertical="center", wrap_text=True)
    cell.fill = _solid(css_to_argb(fmt.bg_color) or "FFE0E0E0")
    cell.border = _BORDER


def _add_pivot_headers(ws: Worksheet, sheet: ExportSheet, group_count: int, row: int) -> int:
    header_rows = sheet.result.header_rows
    group_columns = sheet.config.group_columns
    span = max(len(header_rows), 1)

    # Group-column labels occupy the header block, merged top to bottom.
    for idx, col in enumerate(group_columns):
        cell = ws.cell(row=row, column=idx + 1, value=col.label)
        _style_header(cell, sheet)
        if span > 1:
            ws.merge_cells(start_row=row, start_column=idx + 1, end_row=row + span - 1, end_column=idx + 1)
            for offset in range(1, span):
                ws.cell(row=row + offset, column=idx + 1).border = _BORDER

    if not header_rows:
        if group_columns:
            ws.row_dimensions[row].height = max(row_height(c.label) for c in group_columns)
            return row + 1
        return row

    for header_row in header_rows:
        height = max((row_height(c.label) for c in group_columns), default=row_height(None))
        column = group_count + 1
        for header in header_row:
            cell = ws.cell(row=row, column=column, value=header.label)
            _style_header(cell, sheet)
            if header.style is not None:
                bg = css_to_argb(header.style.bg_color)
                if bg:
                    cell.fill = _solid(bg)
                color = css_to_argb(header.style.font_color)
                if color:
                    cell.font = Font(bold=True, size=10, color=color, italic=bool(header.style.italic))
            height = max(height, row_height(header.label))
            if header.col_span > 1:
                ws.merge_cells(start_row=row, start_column=column, end_row=row, end_column=column + header.col_span - 1)
                for offset in range(1, header.col_span):
                    ws.cell(row=row, column=column + offset).border = _BORDER
            column += header.col_span
        ws.row_dimensions[row].height = height
        row += 1
    return row


def _is_date_cell(column: ColumnSpec, value: Any) -> bool:
    if column.data_type in ("date", "datetime"):
        return True
    return isinstance(value, str) and bool(_DATE_LIKE_RE.match(value))


def _write_data_value(cell: Cell, value: Any, column: ColumnSpec | None) -> None:
    cell.value = value
    if column is None:
        return
    is_numeric = isinstance(value, (int, float)) and not isinstance(value, bool)
    if column.number_format and is_numeric:
        cell.number_format = excel_number_format(column.number_format)
    if column.date_format and _is_date_cell(column, value):
        cell.number_format = excel_date_format(column.date_format)
        if isinstance(value, str):
            moment = parse_date(value)
            if moment is not None:
                cell.value = moment


def _add_data_rows(ws: Worksheet, sheet: ExportSheet, row: int) -> None:
    result = sheet.result
    value_columns = sheet.config.value_columns

    for row_idx, headers in enumerate(result.row_headers):
        column = 1
        for level, header in enumerate(headers):
            cell = ws.cell(row=row, column=column)
            cell.border = _BORDER
            if header.is_visible:
                cell.value = header.value
                _apply_cell_style(cell, header.style, bold=True)
                indent = level if level > 0 and not header.is_total else 0
                cell.alignment = Alignment(horizontal="left", vertical="center", indent=indent)
                if header.row_span > 1 or header.col_span > 1:
                    ws.merge_cells(
                        start_row=row,
                        start_column=column,
                        end_row=row + header.row_span - 1,
                        end_column=column + header.col_span - 1,
                    )
            column += 1

        data_row = result.data_matrix[row_idx] if row_idx < len(result.data_matrix) else []
        for slot, data in enumerate(data_row):
            cell = ws.cell(row=row, column=column)
            value_col = value_columns[slot % len(value_columns)] if value_columns else None
            if data.value is not None:
                _write_data_value(cell, data.value, value_col)
                _apply_cell_style(cell, data.style)
            else:
                cell.font = Font(size=10)
            cell.border = _BORDER
            is_number = isinstance(data.value, (int, float)) and not isinstance(data.value, bool)
            cell.alignment = Alignment(horizontal="right" if is_number else "left", vertical="center")
            column += 1
        row += 1


def _add_icon_sets(ws: Worksheet, sheet: ExportSheet, group_count: int, first_row: int) -> None:
    """Attach native icon-set rules to value columns configured with one."""
    result = sheet.result
    value_columns = sheet.config.value_columns
    if not result.data_matrix or not value_columns:
        return
    last_row = first_row + len(result.data_matrix) - 1
    for slot in range(result.data_width):
        column = value_columns[slot % len(value_columns)]
        for rule in column.conditional_formats:
            if not isinstance(rule, IconSetRule):
                continue
            letter = get_column_letter(group_count + slot + 1)
            ws.conditional_formatting.add(
                f"{letter}{first_row}:{letter}{last_row}",
                ExcelIconSetRule(_EXCEL_ICON_SETS[rule.icon_set], "percent", [0, 33, 67], reverse=rule.reverse),
            )


def write_sheet(ws: Worksheet, sheet: ExportSheet, now: datetime | None = None) -> None:
    """Render one pivot result onto *ws*."""
    result = sheet.result
    group_count = len(sheet.config.group_columns)
    total_columns = group_count + result.data_width

    row = _add_custom_headers(ws, sheet, total_columns, 1, now)
    row = _add_pivot_headers(ws, sheet, group_count, row)
    first_data_row = row
    _add_data_rows(ws, sheet, row)
    _add_icon_sets(ws, sheet, group_count, first_data_row)

    for idx in range(1, total_columns + 1):
        width = settings.row_header_width if idx <= group_count else settings.data_column_width
        ws.column_dimensions[get_column_letter(idx)].width = width

    ws.freeze_panes = ws.cell(row=first_data_row, column=group_count + 1)
    ws.sheet_view.showGridLines = False


def excel_filename(workbook_name: str, now: datetime | None = None) -> str:
    return f"{workbook_name}_{(now or datetime.now()).strftime('%Y-%m-%d')}.xlsx"


def export_excel(
    sheets: Sequence[ExportSheet],
    workbook_name: str | None = None,
    now: datetime | None = None,
) -> tuple[str, bytes]:
    """Render *sheets* into one workbook. Returns ``(filename, content)``."""
    if not sheets:
        raise ValueError("No sheets to export")
    workbook_name = workbook_name or settings.default_workbook_name

    try:
        wb = Workbook()
        wb.remove(wb.active)
        for index, sheet in enumerate(sheets):
            wanted = sheet.sheet_name or sheet.config.sheet_name or f"Sheet{index + 1}"
            ws = wb.create_sheet(unique_title(wb.sheetnames, wanted))
            logger.debug(
                "Writing sheet %s: %d group columns, %d data columns, %d rows",
                ws.title, len(sheet.config.group_columns), sheet.result.data_width, len(sheet.result.row_headers),
            )
            write_sheet(ws, sheet, now)

        buffer = io.BytesIO()
        wb.save(buffer)
    except Exception:
        logger.exception("Excel export failed for workbook %s", workbook_name)
        raise

    filename = excel_filename(workbook_name, now)
    logger.info("Excel generated: %s (%d sheets)", filename, len(sheets))
    return filename, buffer.getvalue()
