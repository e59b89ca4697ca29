"""Worksheet summary data -> flat row dicts."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

MEASURE_NAMES = "Measure Names"
MEASURE_VALUES = "Measure Values"


@dataclass
class SummaryData:
    """Columnar worksheet data: column names plus one list of cells per row.

    Cells are either plain values or mappings carrying a ``value`` key, the
    shape dashboard APIs use for data values.
    """

    columns: list[str]
    data: list[list[Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.data)


def _cell_value(cell: Any) -> Any:
    if isinstance(cell, Mapping):
        return cell.get("value")
    return cell


def _clean(value: Any) -> Any:
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _unpivot_measures(frame: pd.DataFrame, dimensions: list[str]) -> list[dict]:
    """Fold one-row-per-measure data into one row per dimension combination."""
    if not dimensions:
        row: dict[str, Any] = {}
        for name, value in zip(frame[MEASURE_NAMES], frame[MEASURE_VALUES]):
            row[str(name)] = _clean(value)
        return [row] if row else []

    rows = []
    for key, group in frame.groupby(dimensions, sort=False, dropna=False):
        if not isinstance(key, tuple):
            key = (key,)
        row = {dim: _clean(value) for dim, value in zip(dimensions, key)}
        # Later rows win when a measure repeats for the same dimensions.
        for name, value in zip(group[MEASURE_NAMES], group[MEASURE_VALUES]):
            row[str(name)] = _clean(value)
        rows.append(row)
    return rows


def rows_from_summary(summary: SummaryData) -> list[dict]:
    """Convert *summary* into one dict per row, keyed by column name.

    Data in the "Measure Names / Measure Values" layout is unpivoted so that
    each measure becomes its own field.
    """
    if not summary.data:
        return []
    columns = [str(c) for c in summary.columns]
    values = [[_cell_value(cell) for cell in row] for row in summary.data]

    if MEASURE_NAMES in columns and MEASURE_VALUES in columns:
        frame = pd.DataFrame(values, columns=columns, dtype=object)
        dimensions = [c for c in columns if c not in (MEASURE_NAMES, MEASURE_VALUES)]
        rows = _unpivot_measures(frame, dimensions)
        logger.debug("Unpivoted %d measure rows into %d rows", len(values), len(rows))
        return rows

    return [dict(zip(columns, row)) for row in values]


def summary_from_rows(rows: Sequence[Mapping[str, Any]]) -> SummaryData:
    """Inverse of :func:`rows_from_summary` for already-flat rows."""
    columns: list[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    return SummaryData(columns=columns, data=[[row.get(c) for c in columns] for row in rows])
