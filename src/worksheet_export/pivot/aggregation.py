"""Sparse (row key, column key) -> value store backing the data matrix.

Main-dataset cells are a lookup of already aggregated upstream values.
Totals come from precomputed row-total and column-total datasets; the only
sum performed here is the grand-total intersection.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from worksheet_export.pivot.fields import normalize_field_name, read_column, resolve_field
from worksheet_export.pivot.keys import TOTAL_KEY, build_key
from worksheet_export.pivot.models import ColumnSpec

logger = logging.getLogger(__name__)

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")
_LEADING_FLOAT_RE = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def parse_leading_float(text: str) -> float | None:
    """Parse the longest numeric prefix of *text*, or None."""
    match = _LEADING_FLOAT_RE.match(text)
    if not match:
        return None
    return float(match.group(0))


def coerce_number(value: Any) -> float:
    """Best-effort numeric coercion for totals: ``"$1,234.5"`` -> 1234.5, junk -> 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        parsed = parse_leading_float(_NON_NUMERIC_RE.sub("", value))
        return parsed if parsed is not None else 0.0
    return 0.0


Cell = dict[str, Any]


class AggregationStore:
    """Values per (row key, column key), each a dict keyed by value-column id."""

    def __init__(self) -> None:
        self._cells: dict[tuple[str, str], Cell] = {}

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._cells

    def cell(self, row_key: str, col_key: str) -> Cell | None:
        return self._cells.get((row_key, col_key))

    def _ensure(self, row_key: str, col_key: str) -> Cell:
        return self._cells.setdefault((row_key, col_key), {})

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def populate(
        self,
        rows: Sequence[Mapping[str, Any]],
        group_columns: Sequence[ColumnSpec],
        pivot_columns: Sequence[ColumnSpec],
        value_columns: Sequence[ColumnSpec],
        field_mapping: Mapping[str, str],
    ) -> None:
        """Store every row's value-column scalars; later rows overwrite earlier ones."""
        for row in rows:
            row_key = build_key(row, group_columns, field_mapping)
            cell = self._ensure(row_key, build_key(row, pivot_columns, field_mapping))
            for vc in value_columns:
                value = read_column(row, vc, field_mapping)
                cell[vc.id] = value
                mapped = field_mapping.get(vc.id)
                if mapped and mapped != vc.id and value is not None:
                    cell[mapped] = value

    def _total_value(self, row: Mapping[str, Any], column: ColumnSpec, field_mapping: Mapping[str, str]) -> float:
        value = resolve_field(row, column.id, column.name or None)
        if value is None:
            mapped = field_mapping.get(column.id)
            if mapped:
                value = row.get(mapped)
        return coerce_number(value)

    def add_row_totals(
        self,
        rows: Sequence[Mapping[str, Any]],
        group_columns: Sequence[ColumnSpec],
        value_columns: Sequence[ColumnSpec],
        field_mapping: Mapping[str, str],
    ) -> None:
        """Store precomputed per-row grand totals under (row key, TOTAL)."""
        for row in rows:
            cell = self._ensure(build_key(row, group_columns, field_mapping), TOTAL_KEY)
            for vc in value_columns:
                cell[vc.id] = self._total_value(row, vc, field_mapping)
        logger.debug("Injected %d row-total rows", len(rows))

    def add_column_totals(
        self,
        rows: Sequence[Mapping[str, Any]],
        pivot_columns: Sequence[ColumnSpec],
        value_columns: Sequence[ColumnSpec],
        field_mapping: Mapping[str, str],
    ) -> None:
        """Store precomputed per-column grand totals under (TOTAL, column key)."""
        for row in rows:
            cell = self._ensure(TOTAL_KEY, build_key(row, pivot_columns, field_mapping))
            for vc in value_columns:
                cell[vc.id] = self._total_value(row, vc, field_mapping)
        logger.debug("Injected %d column-total rows", len(rows))

    def add_grand_total(
        self,
        column_total_rows: Sequence[Mapping[str, Any]],
        value_columns: Sequence[ColumnSpec],
        field_mapping: Mapping[str, str],
    ) -> None:
        """Sum the column-total dataset into the (TOTAL, TOTAL) intersection."""
        sums = {vc.id: 0.0 for vc in value_columns}
        for row in column_total_rows:
            for vc in value_columns:
                sums[vc.id] += self._total_value(row, vc, field_mapping)
        self._ensure(TOTAL_KEY, TOTAL_KEY).update(sums)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(
        self,
        row_key: str,
        col_key: str,
        column: ColumnSpec,
        mapped_key: str | None = None,
    ) -> Any:
        """Value for *column* in one cell, tolerating key naming mismatches."""
        cell = self._cells.get((row_key, col_key))
        if cell is None:
            return None

        value = cell.get(column.id)
        if value is None and mapped_key:
            value = cell.get(mapped_key)
        if value is None:
            normalized = normalize_field_name(column.id)
            value = cell.get(normalized)
            if value is None:
                wanted = {column.id.lower(), normalized.lower()}
                if column.name:
                    wanted.add(column.name.lower())
                for key, candidate in cell.items():
                    if key.lower() in wanted and candidate is not None:
                        value = candidate
                        break
        return value
