"""Column, rule and totals configuration for the pivot engine.

These models are parsed from the JSON the host keeps in its settings store,
so every model accepts the camelCase keys of that store as well as
snake_case field names.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _ConfigModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Conditional formatting rules
# ---------------------------------------------------------------------------


class RuleStyle(_ConfigModel):
    font_color: str | None = None
    bg_color: str | None = None
    bold: bool = False
    italic: bool = False


_OPERATOR_SYMBOLS = {
    ">": "gt",
    "<": "lt",
    ">=": "gte",
    "<=": "lte",
    "==": "eq",
    "=": "eq",
    "!=": "neq",
}


class CellValueRule(_ConfigModel):
    """Compare the cell against one or two literal comparands."""

    type: Literal["cellValue"] = "cellValue"
    id: str = ""
    operator: Literal["gt", "lt", "gte", "lte", "eq", "neq", "between", "contains"]
    value1: float | str
    value2: float | str | None = None
    style: RuleStyle = Field(default_factory=RuleStyle)

    @field_validator("operator", mode="before")
    @classmethod
    def _normalize_operator(cls, value: object) -> object:
        if isinstance(value, str):
            return _OPERATOR_SYMBOLS.get(value.strip(), value.strip())
        return value


class TopBottomRule(_ConfigModel):
    """Highlight the top or bottom N (or N percent) of a column."""

    type: Literal["topBottom"] = "topBottom"
    id: str = ""
    mode: Literal["top", "bottom"] = "top"
    count: float = 10
    percent: bool = False
    style: RuleStyle = Field(default_factory=RuleStyle)


class ColorScaleRule(_ConfigModel):
    type: Literal["colorScale"] = "colorScale"
    id: str = ""
    scale_type: Literal["2-color", "3-color"] = "2-color"
    min_color: str = "#f8696b"
    mid_color: str | None = None
    max_color: str = "#63be7b"


class IconSetRule(_ConfigModel):
    type: Literal["iconSet"] = "iconSet"
    id: str = ""
    icon_set: Literal["arrows", "trafficLights", "flags", "shapes"] = "trafficLights"
    reverse: bool = False


ConditionalFormatRule = Annotated[
    Union[CellValueRule, TopBottomRule, ColorScaleRule, IconSetRule],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Display formats
# ---------------------------------------------------------------------------


class NumberFormat(_ConfigModel):
    decimal_places: int | None = None
    thousand_separator: bool | None = None
    display_type: Literal["number", "currency", "percentage", "scientific"] | None = None
    currency_symbol: str | None = None
    negative_format: str | None = None  # minus, parentheses, red, -1234, (1234), 1234-


class DateFormat(_ConfigModel):
    pattern: str = "short"  # short, medium, long, full, ISO, custom or a spreadsheet pattern
    custom_pattern: str | None = None


# ---------------------------------------------------------------------------
# Columns and totals
# ---------------------------------------------------------------------------


class ColumnSpec(_ConfigModel):
    """One configured worksheet column."""

    id: str
    name: str = ""
    data_type: str | None = None  # categorical / numeric / date / datetime
    role: str | None = None
    conditional_formats: list[ConditionalFormatRule] = Field(default_factory=list)
    number_format: NumberFormat | None = None
    date_format: DateFormat | None = None

    @property
    def label(self) -> str:
        return self.name or self.id


class TotalsConfig(_ConfigModel):
    show_row_totals: bool = False
    row_totals_position: Literal["left", "right"] = "right"
    row_totals_label: str | None = None
    show_column_totals: bool = False
    column_totals_position: Literal["top", "bottom"] = "bottom"
    column_totals_label: str | None = None
    show_subtotals: bool = False
