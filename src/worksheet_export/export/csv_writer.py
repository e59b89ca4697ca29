"""CSV export of a pivot result.

Rows are rendered in chunks and the generator yields control to the event
loop between chunks so that very large worksheets do not stall the host.
"""

from __future__ import annotations

import asyncio
import csv
import io
import logging
from collections.abc import AsyncIterator, Iterable, Sequence
from datetime import datetime
from typing import Any

from config.settings import settings
from worksheet_export.export.header_rows import build_header_lines
from worksheet_export.export.models import ExportSheet

logger = logging.getLogger(__name__)


def _csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _render(lines: Iterable[Sequence[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for line in lines:
        writer.writerow([_csv_value(v) for v in line])
    return buffer.getvalue()


def _header_lines(sheet: ExportSheet) -> list[list[str]]:
    result = sheet.result
    group_labels = [col.label for col in sheet.config.group_columns]
    blanks = [""] * len(group_labels)

    lines: list[list[str]] = []
    for idx, header_row in enumerate(result.header_rows):
        is_last = idx == len(result.header_rows) - 1
        line = list(group_labels if is_last else blanks)
        for header in header_row:
            line.append(header.label)
            line.extend([""] * (header.col_span - 1))
        lines.append(line)

    if not lines and group_labels:
        lines.append(group_labels)
    return lines


def _data_lines(sheet: ExportSheet, start: int, end: int) -> list[list[Any]]:
    result = sheet.result
    lines = []
    for row_idx in range(start, end):
        line: list[Any] = [cell.value if cell.is_visible else "" for cell in result.row_headers[row_idx]]
        data_row = result.data_matrix[row_idx] if row_idx < len(result.data_matrix) else []
        line.extend(cell.value for cell in data_row)
        lines.append(line)
    return lines


async def iter_csv_chunks(
    sheet: ExportSheet,
    chunk_size: int | None = None,
    now: datetime | None = None,
) -> AsyncIterator[str]:
    """Yield the CSV document for *sheet* piece by piece."""
    chunk_size = chunk_size or settings.csv_chunk_size

    custom = build_header_lines(sheet.config.header_row_settings, sheet.filters, sheet.fields, " | ", now)
    if custom:
        yield _render([line] for line in custom)
        yield "\n"

    yield _render(_header_lines(sheet))

    total_rows = len(sheet.result.row_headers)
    for start in range(0, total_rows, chunk_size):
        end = min(start + chunk_size, total_rows)
        yield _render(_data_lines(sheet, start, end))
        if end < total_rows:
            await asyncio.sleep(0)


def csv_filename(sheet: ExportSheet, now: datetime | None = None) -> str:
    config = sheet.config
    stamp = (now or datetime.now()).strftime("%Y-%m-%d")
    workbook = config.workbook_name or settings.default_workbook_name
    worksheet = config.worksheet_name or config.worksheet or sheet.sheet_name or "Sheet"
    return f"{workbook}_{worksheet}_{stamp}.csv"


async def export_csv(
    sheet: ExportSheet,
    chunk_size: int | None = None,
    now: datetime | None = None,
) -> tuple[str, bytes]:
    """Render *sheet* as CSV. Returns ``(filename, content)``."""
    try:
        chunks = [chunk async for chunk in iter_csv_chunks(sheet, chunk_size, now)]
    except Exception:
        logger.exception("CSV export failed for worksheet %s", sheet.sheet_name or sheet.config.worksheet)
        raise
    return csv_filename(sheet, now), "".join(chunks).encode("utf-8")
