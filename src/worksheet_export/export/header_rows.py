"""Custom header lines printed above an exported pivot table."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from worksheet_export.export.models import FilterValue, HeaderRowSetting
from worksheet_export.pivot.models import ColumnSpec


def _column_line(setting: HeaderRowSetting, filters: Sequence[FilterValue], fields: Sequence[ColumnSpec]) -> str:
    field = next((f for f in fields if f.id == setting.column), None)
    name = (field.name if field and field.name else None) or setting.column or ""
    active = next((f for f in filters if f.id == setting.column), None)
    # A comma-separated filter value means several members are selected.
    if active and active.value and "," not in active.value:
        return f"{name}: {active.value}"
    return f"{name}: (All)"


def _filters_line(setting: HeaderRowSetting, filters: Sequence[FilterValue], separator: str) -> str:
    parts = []
    for filter_id in setting.selected_filters:
        active = next((f for f in filters if f.id == filter_id), None)
        name = (active.name if active and active.name else None) or filter_id
        value = (active.value if active and active.value else None) or "All"
        parts.append(f"{name}: {value}")
    return separator.join(parts)


def build_header_line(
    setting: HeaderRowSetting,
    filters: Sequence[FilterValue],
    fields: Sequence[ColumnSpec],
    separator: str = " | ",
    now: datetime | None = None,
) -> str:
    if setting.type == "text":
        return setting.text or ""
    if setting.type == "column":
        return _column_line(setting, filters, fields)
    if setting.type == "filters":
        return _filters_line(setting, filters, separator)
    if setting.type == "refreshDate":
        moment = now or datetime.now()
        return f"Data as of: {moment.strftime('%m/%d/%Y, %I:%M:%S %p')}"
    return ""


def build_header_lines(
    settings: Sequence[HeaderRowSetting],
    filters: Sequence[FilterValue],
    fields: Sequence[ColumnSpec],
    separator: str = " | ",
    now: datetime | None = None,
) -> list[str]:
    """One rendered line per configured header row, in order."""
    return [build_header_line(s, filters, fields, separator, now) for s in settings]
