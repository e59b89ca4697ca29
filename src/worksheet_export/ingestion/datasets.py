"""Fetch a worksheet and its grand-total companion worksheets.

Precomputed totals live in sibling worksheets named by convention:
``GC_<name>`` holds column grand totals and ``RC_<name>`` holds row grand
totals.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from config.settings import settings
from worksheet_export.ingestion.summary_data import SummaryData, rows_from_summary

logger = logging.getLogger(__name__)

COLUMN_TOTALS_PREFIX = "GC_"
ROW_TOTALS_PREFIX = "RC_"


class SummaryDataSource(Protocol):
    async def get_summary_data(self, worksheet_name: str, max_rows: int = 0) -> SummaryData | None:
        """Summary data of *worksheet_name*, or None when no such worksheet exists."""
        ...


class InMemorySource:
    """A data source over summary data already in hand."""

    def __init__(self, worksheets: Mapping[str, SummaryData]) -> None:
        self._worksheets = dict(worksheets)

    async def get_summary_data(self, worksheet_name: str, max_rows: int = 0) -> SummaryData | None:
        summary = self._worksheets.get(worksheet_name)
        if summary is None or max_rows <= 0:
            return summary
        return SummaryData(columns=summary.columns, data=summary.data[:max_rows])


@dataclass
class WorksheetDatasets:
    main: list[dict]
    column_totals: list[dict] | None = None
    row_totals: list[dict] | None = None


async def _fetch_rows(source: SummaryDataSource, name: str, max_rows: int) -> list[dict]:
    summary = await source.get_summary_data(name, max_rows)
    if summary is None:
        logger.info('Worksheet "%s" not found', name)
        return []
    return rows_from_summary(summary)


async def fetch_datasets(
    source: SummaryDataSource,
    worksheet_name: str,
    max_rows: int | None = None,
) -> WorksheetDatasets:
    """Load *worksheet_name* plus its ``GC_`` / ``RC_`` companions.

    Raises:
        ValueError: the main worksheet is missing or empty.
    """
    max_rows = settings.max_rows if max_rows is None else max_rows

    logger.debug('Fetching main data for "%s"', worksheet_name)
    main = await _fetch_rows(source, worksheet_name, max_rows)
    if not main:
        raise ValueError(f'Worksheet "{worksheet_name}" not found or empty')

    column_totals = await _fetch_rows(source, f"{COLUMN_TOTALS_PREFIX}{worksheet_name}", max_rows)
    row_totals = await _fetch_rows(source, f"{ROW_TOTALS_PREFIX}{worksheet_name}", max_rows)
    logger.debug(
        "Fetched %d rows, %d column-total rows, %d row-total rows for %s",
        len(main), len(column_totals), len(row_totals), worksheet_name,
    )

    return WorksheetDatasets(
        main=main,
        column_totals=column_totals or None,
        row_totals=row_totals or None,
    )
