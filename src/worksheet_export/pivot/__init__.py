"""Pivot engine.

Public API: process_pivot()

Pipeline:
1. Collect sorted row keys (group columns) and column keys (pivot columns)
2. Map value columns to data fields and fill the aggregation store
3. Inject precomputed row / column grand totals and place the TOTAL keys
4. Lay out merged row headers, multi-level column headers and the data matrix
5. Apply conditional formatting to headers and cells
"""

from worksheet_export.pivot.engine import process_pivot
from worksheet_export.pivot.keys import KEY_DELIMITER, TOTAL_KEY
from worksheet_export.pivot.models import ColumnSpec, TotalsConfig
from worksheet_export.pivot.result import CellStyle, DataCell, HeaderCell, PivotResult, RowHeaderCell

__all__ = [
    "KEY_DELIMITER",
    "TOTAL_KEY",
    "CellStyle",
    "ColumnSpec",
    "DataCell",
    "HeaderCell",
    "PivotResult",
    "RowHeaderCell",
    "TotalsConfig",
    "process_pivot",
]
