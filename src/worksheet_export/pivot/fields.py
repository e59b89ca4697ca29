"""Field resolution — match configured column ids to the keys a row really has.

The dashboard data source may expose a field under a caption that differs
from the configured identifier (``[Sales Amount]`` vs ``Sales Amount`` vs
``SALES AMOUNT``). Resolution tries, first match wins:

1. exact key on the identifier
2. exact key on the display name
3. identifier and row keys with ``[`` / ``]`` and surrounding whitespace stripped
4. case-insensitive match on identifier, stripped identifier or display name

:func:`build_field_mapping` runs once per dataset and adds a fifth tier,
substring containment in either direction.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from worksheet_export.pivot.models import ColumnSpec

logger = logging.getLogger(__name__)

_BRACKETS_RE = re.compile(r"[\[\]]")


def normalize_field_name(name: str) -> str:
    """Strip bracket characters and surrounding whitespace."""
    return _BRACKETS_RE.sub("", str(name)).strip()


def _exact_tiers(keys: Sequence[str], field_id: str, field_name: str | None) -> str | None:
    key_set = set(keys)
    if field_id in key_set:
        return field_id
    if field_name and field_name in key_set:
        return field_name

    normalized_id = normalize_field_name(field_id)
    if normalized_id:
        for key in keys:
            if key != field_id and normalize_field_name(key) == normalized_id:
                return key

    candidates = {field_id.lower(), normalized_id.lower()}
    if field_name:
        candidates.add(field_name.lower())
    candidates.discard("")
    for key in keys:
        if key.lower() in candidates or normalize_field_name(key).lower() in candidates:
            return key
    return None


def find_field_key(row: Mapping[str, Any], field_id: str, field_name: str | None = None) -> str | None:
    """Return the key of *row* that holds *field_id*, or None."""
    if not isinstance(row, Mapping):
        return None
    return _exact_tiers(list(row.keys()), field_id, field_name)


def resolve_field(
    row: Mapping[str, Any],
    field_id: str,
    field_name: str | None = None,
    default: Any = None,
) -> Any:
    """Return the value of *field_id* in *row*, or *default* when no key matches."""
    key = find_field_key(row, field_id, field_name)
    if key is None:
        return default
    return row[key]


def _substring_match(keys: Iterable[str], field_id: str) -> str | None:
    id_lower = field_id.lower()
    normalized_lower = normalize_field_name(field_id).lower()
    for key in keys:
        key_lower = key.lower()
        if not key_lower:
            continue
        if id_lower and (id_lower in key_lower or key_lower in id_lower):
            return key
        if normalized_lower and (normalized_lower in key_lower or key_lower in normalized_lower):
            return key
    return None


def build_field_mapping(
    first_row: Mapping[str, Any] | None,
    columns: Sequence[ColumnSpec],
) -> tuple[dict[str, str], list[str]]:
    """Map each column id to the actual key found in *first_row*.

    Returns ``(mapping, unmapped_ids)``. Columns that cannot be matched are
    logged and left out of the mapping; callers fall back to per-row
    resolution for them.
    """
    mapping: dict[str, str] = {}
    unmapped: list[str] = []
    if not first_row:
        return mapping, [c.id for c in columns]

    keys = [str(k) for k in first_row.keys()]
    for col in columns:
        actual = _exact_tiers(keys, col.id, col.name or None)
        if actual is None:
            actual = _substring_match(keys, col.id)
        if actual is None:
            logger.warning(
                "Could not map column '%s' (id: %s) to any field in data. Available fields: %s",
                col.label, col.id, ", ".join(keys),
            )
            unmapped.append(col.id)
            continue
        mapping[col.id] = actual

    logger.debug("Field mapping (column id -> data field): %s", mapping)
    return mapping, unmapped


def read_column(row: Mapping[str, Any], column: ColumnSpec, mapping: Mapping[str, str] | None = None) -> Any:
    """Read *column* from *row*, preferring the cached key from *mapping*."""
    if mapping:
        mapped = mapping.get(column.id)
        if mapped is not None and mapped in row:
            return row[mapped]
    return resolve_field(row, column.id, column.name or None)
