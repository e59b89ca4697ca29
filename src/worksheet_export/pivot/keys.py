"""Row and column key construction."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from worksheet_export.pivot.fields import read_column
from worksheet_export.pivot.models import ColumnSpec

# ASCII unit separator: never present in dashboard captions or values.
KEY_DELIMITER = "\x1f"

# Built from the record separator so no join of real values can produce it.
TOTAL_KEY = "\x1eTOTAL\x1e"


def key_part(value: Any) -> str:
    """Stringify one dimension value the way it appears inside a key."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
    return str(value)


def build_key(
    row: Mapping[str, Any],
    columns: Sequence[ColumnSpec],
    field_mapping: Mapping[str, str] | None = None,
) -> str:
    """Join the stringified values of *columns* in *row*."""
    return KEY_DELIMITER.join(key_part(read_column(row, c, field_mapping)) for c in columns)


def split_key(key: str) -> list[str]:
    return key.split(KEY_DELIMITER)


def collect_keys(
    rows: Sequence[Mapping[str, Any]],
    columns: Sequence[ColumnSpec],
    field_mapping: Mapping[str, str] | None = None,
) -> tuple[list[str], dict[str, Mapping[str, Any]]]:
    """Return the sorted unique keys of *rows* and the first row seen for each.

    Keys sort as plain strings, so ``"10"`` comes before ``"2"``. With no
    columns the single key is the empty string.
    """
    representatives: dict[str, Mapping[str, Any]] = {}
    for row in rows:
        key = build_key(row, columns, field_mapping)
        if key not in representatives:
            representatives[key] = row
    return sorted(representatives), representatives


def insert_total(keys: list[str], position: str) -> list[str]:
    """Place the TOTAL marker first (``left``/``top``) or last."""
    if position in ("left", "top"):
        return [TOTAL_KEY, *keys]
    return [*keys, TOTAL_KEY]
