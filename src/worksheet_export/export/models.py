"""Per-worksheet export configuration as kept in the host's settings store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from worksheet_export.pivot.models import ColumnSpec, TotalsConfig
from worksheet_export.pivot.result import PivotResult


class _ConfigModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HeaderRowSetting(_ConfigModel):
    """One custom line printed above the pivot table."""

    type: Literal["text", "column", "filters", "refreshDate"] = "text"
    text: str | None = None
    column: str | None = None
    selected_filters: list[str] = Field(default_factory=list)
    font_color: str | None = None
    bg_color: str | None = None
    text_align: Literal["left", "center", "right"] = "left"


class PivotHeaderFormat(_ConfigModel):
    font_color: str = "#000000"
    bg_color: str = "#E0E0E0"
    text_align: Literal["left", "center", "right"] = "center"


class FilterValue(_ConfigModel):
    """A dashboard filter as reported by the host."""

    id: str
    name: str | None = None
    value: str | None = None


class ExportConfig(_ConfigModel):
    worksheet: str = ""
    export_mode: Literal["formatted", "datadump"] = "formatted"
    workbook_name: str | None = None
    worksheet_name: str | None = None
    sheet_name: str | None = None
    header_row_settings: list[HeaderRowSetting] = Field(default_factory=list)

    group_columns: list[ColumnSpec] = Field(default_factory=list)
    pivot_columns: list[ColumnSpec] = Field(default_factory=list)
    value_columns: list[ColumnSpec] = Field(default_factory=list)

    show_row_totals: bool = False
    row_totals_position: Literal["left", "right"] = "right"
    row_totals_label: str | None = None
    show_column_totals: bool = False
    column_totals_position: Literal["top", "bottom"] = "bottom"
    column_totals_label: str | None = None
    show_subtotals: bool = False

    pivot_header_format: PivotHeaderFormat = Field(default_factory=PivotHeaderFormat)

    @property
    def totals(self) -> TotalsConfig:
        return TotalsConfig(
            show_row_totals=self.show_row_totals,
            row_totals_position=self.row_totals_position,
            row_totals_label=self.row_totals_label,
            show_column_totals=self.show_column_totals,
            column_totals_position=self.column_totals_position,
            column_totals_label=self.column_totals_label,
            show_subtotals=self.show_subtotals,
        )


@dataclass
class ExportSheet:
    """Everything needed to render one worksheet."""

    config: ExportConfig
    result: PivotResult
    filters: list[FilterValue] = field(default_factory=list)
    fields: list[ColumnSpec] = field(default_factory=list)
    sheet_name: str = ""


@dataclass
class ExportFile:
    filename: str
    content: bytes
    media_type: str
    metadata: dict[str, Any] = field(default_factory=dict)
