"""Conditional formatting — evaluate per-column rule sets into cell styles.

Rules on a column apply in configuration order; each matching rule lays the
properties it sets over the style built so far. Data cells combine, in
order, group-column rules (matched against the row's labels), pivot-column
rules (matched against the column's labels) and value-column rules
(matched against the scalar, with the whole column slot as population for
top/bottom, color scales and icon sets).
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

from worksheet_export.pivot.aggregation import parse_leading_float
from worksheet_export.pivot.keys import TOTAL_KEY, split_key
from worksheet_export.pivot.models import (
    CellValueRule,
    ColorScaleRule,
    ColumnSpec,
    ConditionalFormatRule,
    IconSetRule,
    RuleStyle,
    TopBottomRule,
)
from worksheet_export.pivot.result import EMPTY_STYLE, CellStyle, DataCell, HeaderCell, RowHeaderCell

# Low, middle, high bucket for each icon family.
ICON_SETS: dict[str, tuple[str, str, str]] = {
    "arrows": ("arrow-down", "arrow-right", "arrow-up"),
    "trafficLights": ("light-red", "light-yellow", "light-green"),
    "flags": ("flag-red", "flag-yellow", "flag-green"),
    "shapes": ("shape-red-diamond", "shape-yellow-triangle", "shape-green-circle"),
}


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------


def to_number(value: Any) -> float | None:
    """Best-effort numeric reading of a cell value; None when not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        f = float(value)
        return None if math.isnan(f) else f
    return parse_leading_float(str(value))


def column_population(values: Sequence[Any]) -> list[float]:
    """Numeric values of one column slot; non-numeric cells are left out."""
    population = []
    for value in values:
        number = to_number(value)
        if number is not None:
            population.append(number)
    return population


# ---------------------------------------------------------------------------
# Color interpolation
# ---------------------------------------------------------------------------


def _hex_to_rgb(color: str) -> tuple[int, int, int]:
    text = color.lstrip("#")
    if len(text) == 6:
        try:
            return int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)
        except ValueError:
            pass
    return 0, 0, 0


def _interpolate(start: tuple[int, int, int], end: tuple[int, int, int], factor: float) -> str:
    channels = (math.floor(s + (e - s) * factor + 0.5) for s, e in zip(start, end))
    return "#" + "".join(f"{c:02x}" for c in channels)


def color_from_scale(
    value: float,
    low: float,
    high: float,
    min_color: str,
    max_color: str,
    mid_color: str | None = None,
) -> str:
    """Linear color for *value* between *low* and *high*.

    The three-color midpoint sits at the mean of *low* and *high*.
    """
    if value <= low:
        return min_color
    if value >= high:
        return max_color
    if mid_color:
        mid = (low + high) / 2
        if value < mid:
            return _interpolate(_hex_to_rgb(min_color), _hex_to_rgb(mid_color), (value - low) / (mid - low))
        return _interpolate(_hex_to_rgb(mid_color), _hex_to_rgb(max_color), (value - mid) / (high - mid))
    return _interpolate(_hex_to_rgb(min_color), _hex_to_rgb(max_color), (value - low) / (high - low))


# ---------------------------------------------------------------------------
# Rule evaluators
# ---------------------------------------------------------------------------


def _rule_style(style: RuleStyle) -> CellStyle:
    return CellStyle(
        font_color=style.font_color or None,
        bg_color=style.bg_color or None,
        bold=True if style.bold else None,
        italic=True if style.italic else None,
    )


def _matches_cell_value(rule: CellValueRule, value: Any, number: float | None) -> bool:
    if number is None:
        text, target = str(value), _comparand_text(rule.value1)
        if rule.operator == "contains":
            return target in text
        if rule.operator == "eq":
            return text == target
        if rule.operator == "neq":
            return text != target
        return False

    v1 = to_number(rule.value1)
    v2 = to_number(rule.value2) if rule.value2 not in (None, "") else 0.0
    if v1 is None:
        return False
    if rule.operator == "gt":
        return number > v1
    if rule.operator == "lt":
        return number < v1
    if rule.operator == "gte":
        return number >= v1
    if rule.operator == "lte":
        return number <= v1
    if rule.operator == "eq":
        return number == v1
    if rule.operator == "neq":
        return number != v1
    if rule.operator == "between":
        return v2 is not None and v1 <= number <= v2
    return False


def _comparand_text(value: float | str) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def top_bottom_threshold(rule: TopBottomRule, population: Sequence[float]) -> float | None:
    """The boundary value a cell must reach to qualify, or None for no match."""
    if not population:
        return None
    ordered = sorted(population)
    size = len(ordered)
    count = math.ceil(size * (rule.count / 100)) if rule.percent else int(rule.count)
    if count <= 0:
        return None
    if rule.mode == "top":
        return ordered[max(0, size - count)]
    return ordered[min(size - 1, count - 1)]


def _matches_top_bottom(rule: TopBottomRule, number: float, population: Sequence[float]) -> bool:
    threshold = top_bottom_threshold(rule, population)
    if threshold is None:
        return False
    return number >= threshold if rule.mode == "top" else number <= threshold


def icon_bucket(value: float, low: float, high: float, reverse: bool = False) -> int | None:
    """Equal-width three-way split of [low, high]; 0 is the low bucket."""
    if low == high:
        return None
    width = (high - low) / 3
    if value < low + width:
        bucket = 0
    elif value < low + 2 * width:
        bucket = 1
    else:
        bucket = 2
    return 2 - bucket if reverse else bucket


def evaluate_rules(
    value: Any,
    rules: Sequence[ConditionalFormatRule],
    population: Sequence[float] = (),
) -> CellStyle:
    """Merge the styles of every rule in *rules* that matches *value*."""
    if value is None or not rules:
        return EMPTY_STYLE
    number = to_number(value)
    style = EMPTY_STYLE

    for rule in rules:
        if isinstance(rule, CellValueRule):
            if _matches_cell_value(rule, value, number):
                style = style.merged(_rule_style(rule.style))
        elif isinstance(rule, TopBottomRule):
            if number is not None and _matches_top_bottom(rule, number, population):
                style = style.merged(_rule_style(rule.style))
        elif isinstance(rule, ColorScaleRule):
            if number is not None and population:
                low, high = min(population), max(population)
                if low != high:
                    mid = rule.mid_color if rule.scale_type == "3-color" else None
                    color = color_from_scale(number, low, high, rule.min_color, rule.max_color, mid)
                    style = style.merged(CellStyle(bg_color=color))
        elif isinstance(rule, IconSetRule):
            if number is not None and population:
                bucket = icon_bucket(number, min(population), max(population), rule.reverse)
                if bucket is not None:
                    style = style.merged(CellStyle(icon=ICON_SETS[rule.icon_set][bucket]))
        else:
            raise TypeError(f"Unknown conditional format rule: {rule!r}")
    return style


# ---------------------------------------------------------------------------
# Application to a laid-out pivot
# ---------------------------------------------------------------------------


def _merge_into(current: CellStyle | None, style: CellStyle) -> CellStyle:
    return (current or EMPTY_STYLE).merged(style)


def apply_row_header_rules(headers: list[list[RowHeaderCell]], group_columns: Sequence[ColumnSpec]) -> None:
    """Style row headers whose label matches their group column's rules.

    A match also styles every deeper level of the same row and of the rows
    folded into the matching cell's span. Total rows are never matched.
    """
    for level, col in enumerate(group_columns):
        if not col.conditional_formats:
            continue
        for idx, row in enumerate(headers):
            header = row[level]
            if not header.is_visible or header.is_total:
                continue
            style = evaluate_rules(header.value, col.conditional_formats)
            if style.is_empty:
                continue
            header.style = _merge_into(header.style, style)
            for target in headers[idx:idx + header.row_span]:
                for child in target[level + 1:]:
                    child.style = _merge_into(child.style, style)


def apply_column_header_rules(header_rows: list[list[HeaderCell]], pivot_columns: Sequence[ColumnSpec]) -> None:
    """Style pivot-level header labels matching their pivot column's rules."""
    for level, col in enumerate(pivot_columns):
        if not col.conditional_formats or level >= len(header_rows):
            continue
        for header in header_rows[level]:
            if not header.label or header.is_total:
                continue
            style = evaluate_rules(header.label, col.conditional_formats)
            if not style.is_empty:
                header.style = _merge_into(header.style, style)


def apply_data_rules(
    matrix: list[list[DataCell]],
    row_headers: list[list[RowHeaderCell]],
    column_keys: Sequence[str],
    group_columns: Sequence[ColumnSpec],
    pivot_columns: Sequence[ColumnSpec],
    value_columns: Sequence[ColumnSpec],
) -> None:
    """Combine row, column and value rules into each data cell's style.

    Total rows and columns skip the label rules, but their cells are
    matched by value rules and count towards each column's population.
    """
    if not matrix or not value_columns:
        return
    width = len(matrix[0])

    populations: dict[int, list[float]] = {}
    for slot in range(width):
        if value_columns[slot % len(value_columns)].conditional_formats:
            populations[slot] = column_population([row[slot].value for row in matrix])

    # Label styles depend only on the row or the column, not on the cell.
    row_styles: list[CellStyle] = []
    for headers in row_headers:
        style = EMPTY_STYLE
        for level, col in enumerate(group_columns):
            header = headers[level]
            if col.conditional_formats and not header.is_total:
                style = style.merged(evaluate_rules(header.value, col.conditional_formats))
        row_styles.append(style)

    column_styles: dict[str, CellStyle] = {}
    for col_key in column_keys:
        style = EMPTY_STYLE
        if col_key != TOTAL_KEY:
            parts = split_key(col_key)
            for level, col in enumerate(pivot_columns):
                if col.conditional_formats:
                    label = parts[level] if level < len(parts) else ""
                    style = style.merged(evaluate_rules(label, col.conditional_formats))
        column_styles[col_key] = style

    for row_idx, row in enumerate(matrix):
        for slot, cell in enumerate(row):
            style = row_styles[row_idx].merged(column_styles[column_keys[slot // len(value_columns)]])
            value_col = value_columns[slot % len(value_columns)]
            if value_col.conditional_formats:
                style = style.merged(evaluate_rules(cell.value, value_col.conditional_formats, populations[slot]))
            if not style.is_empty:
                cell.style = style
