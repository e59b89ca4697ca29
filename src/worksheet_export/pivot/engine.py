"""Pivot engine — turn flat worksheet rows into a styled cross-tab.

Pure, synchronous function of its inputs: no I/O and no shared state, so
calling it twice on the same snapshot yields equal results.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from config.settings import settings
from worksheet_export.pivot.aggregation import AggregationStore
from worksheet_export.pivot.fields import build_field_mapping
from worksheet_export.pivot.formatting import apply_column_header_rules, apply_data_rules, apply_row_header_rules
from worksheet_export.pivot.headers import build_column_headers, build_row_headers
from worksheet_export.pivot.keys import collect_keys, insert_total
from worksheet_export.pivot.models import ColumnSpec, TotalsConfig
from worksheet_export.pivot.result import DataCell, PivotResult

logger = logging.getLogger(__name__)


def _check_partitions(*groups: Sequence[ColumnSpec]) -> None:
    seen: dict[str, int] = {}
    for idx, group in enumerate(groups):
        for col in group:
            if seen.get(col.id, idx) != idx:
                raise ValueError(f"Column '{col.id}' is configured in more than one of group/pivot/value")
            seen[col.id] = idx


def _log_fill_rate(values: list[list[Any]]) -> None:
    total = sum(len(row) for row in values)
    if total == 0:
        return
    filled = sum(1 for row in values for v in row if v is not None)
    empty = total - filled
    logger.debug(
        "Data matrix: %d cells, %d filled, %d empty (%.1f%% fill)",
        total, filled, empty, filled / total * 100,
    )
    if filled == 0:
        logger.warning("Data matrix has no values; every cell is empty")
    elif empty > total * 0.5:
        logger.warning("Data matrix is mostly empty: %d of %d cells (%.1f%%)", empty, total, empty / total * 100)


def process_pivot(
    rows: Sequence[Mapping[str, Any]],
    group_columns: Sequence[ColumnSpec],
    pivot_columns: Sequence[ColumnSpec],
    value_columns: Sequence[ColumnSpec],
    totals: TotalsConfig | None = None,
    column_totals_rows: Sequence[Mapping[str, Any]] | None = None,
    row_totals_rows: Sequence[Mapping[str, Any]] | None = None,
) -> PivotResult:
    """Build the pivot result for one worksheet snapshot.

    Args:
        rows: Flat row mappings from the worksheet.
        group_columns: Row dimensions, outermost first.
        pivot_columns: Column dimensions, outermost first.
        value_columns: Measures shown in the matrix body.
        totals: Grand-total placement and labels.
        column_totals_rows: Precomputed per-column grand totals (``GC_`` sheet).
        row_totals_rows: Precomputed per-row grand totals (``RC_`` sheet).

    Returns an empty result for an empty dataset.
    """
    _check_partitions(group_columns, pivot_columns, value_columns)
    if not rows:
        return PivotResult()

    totals = totals or TotalsConfig()
    row_total_label = totals.row_totals_label or settings.grand_total_label
    column_total_label = totals.column_totals_label or settings.grand_total_label

    # 1. Field resolution, once per dataset
    field_mapping, unmapped = build_field_mapping(rows[0], [*group_columns, *pivot_columns, *value_columns])

    # 2. Keys
    row_keys, row_representatives = collect_keys(rows, group_columns, field_mapping)
    column_keys = [""]
    if pivot_columns:
        column_keys, _ = collect_keys(rows, pivot_columns, field_mapping)

    # 3. Values
    store = AggregationStore()
    store.populate(rows, group_columns, pivot_columns, value_columns, field_mapping)

    if totals.show_row_totals and row_totals_rows:
        store.add_row_totals(row_totals_rows, group_columns, value_columns, field_mapping)
    if totals.show_column_totals and column_totals_rows:
        store.add_column_totals(column_totals_rows, pivot_columns, value_columns, field_mapping)
        if totals.show_row_totals:
            store.add_grand_total(column_totals_rows, value_columns, field_mapping)

    if totals.show_row_totals:
        column_keys = insert_total(column_keys, totals.row_totals_position)
    if totals.show_column_totals:
        row_keys = insert_total(row_keys, totals.column_totals_position)
    if totals.show_subtotals:
        logger.debug("Subtotals requested; only grand totals are laid out")

    # 4. Layout
    row_headers = build_row_headers(
        row_keys, row_representatives, group_columns, column_total_label, settings.blank_label, field_mapping,
    )
    header_rows = build_column_headers(column_keys, pivot_columns, value_columns, row_total_label)

    data_matrix = [
        [
            DataCell(value=store.lookup(rk, ck, vc, field_mapping.get(vc.id)))
            for ck in column_keys
            for vc in value_columns
        ]
        for rk in row_keys
    ]
    result = PivotResult(
        header_rows=header_rows,
        row_headers=row_headers,
        data_matrix=data_matrix,
        row_keys=row_keys,
        column_keys=column_keys,
        unmapped_columns=unmapped,
    )
    _log_fill_rate(result.values())

    # 5. Conditional formatting
    apply_row_header_rules(row_headers, group_columns)
    apply_column_header_rules(header_rows, pivot_columns)
    apply_data_rules(data_matrix, row_headers, column_keys, group_columns, pivot_columns, value_columns)

    return result
