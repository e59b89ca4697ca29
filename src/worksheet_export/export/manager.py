"""Route exported sheets to their file formats.

- "formatted" sheets always go into a single .xlsx workbook.
- "datadump" sheets become CSV files: one sheet gives a .csv, several
  are bundled into a .zip.
"""

from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Sequence
from datetime import datetime

from config.settings import settings
from worksheet_export.export.csv_writer import export_csv
from worksheet_export.export.excel_writer import export_excel
from worksheet_export.export.models import ExportFile, ExportSheet

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
ZIP_MEDIA_TYPE = "application/zip"


def zip_files(files: Sequence[tuple[str, bytes]]) -> bytes:
    buffer = io.BytesIO()
    used: set[str] = set()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for filename, content in files:
            stem, dot, ext = filename.rpartition(".")
            name, counter = filename, 1
            while name in used:
                name = f"{stem} ({counter}){dot}{ext}"
                counter += 1
            used.add(name)
            archive.writestr(name, content)
    return buffer.getvalue()


async def export_data(
    sheets: Sequence[ExportSheet],
    workbook_name: str | None = None,
    now: datetime | None = None,
) -> list[ExportFile]:
    """Render every sheet and return the files to hand to the user."""
    workbook_name = workbook_name or settings.default_workbook_name
    now = now or datetime.now()
    excel_sheets = [s for s in sheets if s.config.export_mode != "datadump"]
    csv_sheets = [s for s in sheets if s.config.export_mode == "datadump"]
    files: list[ExportFile] = []

    if excel_sheets:
        filename, content = export_excel(excel_sheets, workbook_name, now)
        files.append(ExportFile(filename, content, XLSX_MEDIA_TYPE, {"sheets": len(excel_sheets)}))

    if csv_sheets:
        rendered = [await export_csv(sheet, now=now) for sheet in csv_sheets]
        if len(rendered) == 1:
            filename, content = rendered[0]
            files.append(ExportFile(filename, content, CSV_MEDIA_TYPE, {"sheets": 1}))
        else:
            zip_name = f"{workbook_name}_CSV_Export_{now.strftime('%Y-%m-%d')}.zip"
            files.append(ExportFile(zip_name, zip_files(rendered), ZIP_MEDIA_TYPE, {"sheets": len(rendered)}))

    if not files:
        logger.warning("No files generated for export")
    else:
        logger.info("Exported %d file(s): %s", len(files), ", ".join(f.filename for f in files))
    return files
