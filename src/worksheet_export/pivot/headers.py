"""Row and column header layout with span merging."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from worksheet_export.pivot.fields import read_column
from worksheet_export.pivot.keys import TOTAL_KEY, split_key
from worksheet_export.pivot.models import ColumnSpec
from worksheet_export.pivot.result import CellStyle, HeaderCell, RowHeaderCell

_TOTAL_STYLE = CellStyle(bold=True)


def header_label(value: Any, blank_label: str) -> str:
    """Render a dimension value as a row-header label; blanks become *blank_label*."""
    if value is None or value == "":
        return blank_label
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_row_headers(
    row_keys: Sequence[str],
    representatives: Mapping[str, Mapping[str, Any]],
    group_columns: Sequence[ColumnSpec],
    total_label: str,
    blank_label: str,
    field_mapping: Mapping[str, str] | None = None,
) -> list[list[RowHeaderCell]]:
    """One header cell per group level for every row key, vertically merged."""
    levels = len(group_columns)
    headers: list[list[RowHeaderCell]] = []
    for key in row_keys:
        if key == TOTAL_KEY:
            headers.append([
                RowHeaderCell(
                    value=total_label if idx == 0 else "",
                    col_span=levels if idx == 0 else 1,
                    is_visible=idx == 0,
                    style=_TOTAL_STYLE,
                    is_total=True,
                )
                for idx in range(levels)
            ])
            continue
        row = representatives[key]
        headers.append([
            RowHeaderCell(value=header_label(read_column(row, col, field_mapping), blank_label))
            for col in group_columns
        ])

    _merge_vertical(headers, row_keys, levels)
    return headers


def _merge_vertical(headers: list[list[RowHeaderCell]], row_keys: Sequence[str], levels: int) -> None:
    """Fold repeated labels into the first cell of each run, level by level.

    A cell joins the run above when its own key part and every shallower one
    equal the previous row's. Parts are compared rather than labels, so a
    blank value and a literal blank label stay apart. Total rows break runs
    and never join one.
    """
    for level in range(levels):
        run_start: int | None = None
        for idx, key in enumerate(row_keys):
            if key == TOTAL_KEY:
                run_start = None
                continue
            if run_start is not None and _same_path(key, row_keys[idx - 1], level):
                headers[run_start][level].row_span += 1
                headers[idx][level].is_visible = False
            else:
                run_start = idx


def _same_path(row_key: str, prev_key: str, level: int) -> bool:
    return split_key(row_key)[: level + 1] == split_key(prev_key)[: level + 1]


def _level_label(col_key: str, level: int, total_label: str) -> str:
    if col_key == TOTAL_KEY:
        return total_label if level == 0 else ""
    parts = split_key(col_key)
    return parts[level] if level < len(parts) else ""


def _same_parents(col_key: str, prev_key: str, level: int) -> bool:
    if col_key == TOTAL_KEY or prev_key == TOTAL_KEY:
        return col_key == prev_key
    parts, prev_parts = split_key(col_key), split_key(prev_key)
    return all(
        (parts[p] if p < len(parts) else "") == (prev_parts[p] if p < len(prev_parts) else "")
        for p in range(level)
    )


def build_column_headers(
    column_keys: Sequence[str],
    pivot_columns: Sequence[ColumnSpec],
    value_columns: Sequence[ColumnSpec],
    total_label: str,
) -> list[list[HeaderCell]]:
    """Header rows: one per pivot level, then one of value-column names.

    Each pivot level walks the flattened (column key x value column)
    sequence and merges neighbours sharing this level's label and every
    shallower label.
    """
    expanded = [(ck, vc) for ck in column_keys for vc in value_columns]
    rows: list[list[HeaderCell]] = []

    for level in range(len(pivot_columns)):
        row: list[HeaderCell] = []
        prev_key: str | None = None
        for col_key, _ in expanded:
            label = _level_label(col_key, level, total_label)
            if (
                row
                and prev_key is not None
                and row[-1].label == label
                and _same_parents(col_key, prev_key, level)
                and row[-1].is_total == (col_key == TOTAL_KEY)
            ):
                row[-1].col_span += 1
            else:
                is_total = col_key == TOTAL_KEY
                row.append(HeaderCell(
                    label=label,
                    col_span=1,
                    style=_TOTAL_STYLE if is_total else None,
                    is_total=is_total,
                ))
            prev_key = col_key
        rows.append(row)

    if value_columns:
        rows.append([
            HeaderCell(label=vc.label, col_span=1, is_total=ck == TOTAL_KEY)
            for ck, vc in expanded
        ])
    return rows
