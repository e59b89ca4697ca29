"""Tests for field resolution — matching column ids to the keys rows really carry."""

from __future__ import annotations

import logging

from worksheet_export.pivot.fields import (
    build_field_mapping,
    find_field_key,
    normalize_field_name,
    read_column,
    resolve_field,
)
from worksheet_export.pivot.models import ColumnSpec


class TestNormalizeFieldName:
    def test_strips_brackets_and_whitespace(self):
        assert normalize_field_name("  [Sales Amount]  ") == "Sales Amount"

    def test_plain_name_unchanged(self):
        assert normalize_field_name("Region") == "Region"


class TestResolveField:
    def test_exact_id(self):
        assert resolve_field({"Region": "East"}, "Region") == "East"

    def test_display_name(self):
        assert resolve_field({"Sales": 10}, "SUM(Sales)", "Sales") == 10

    def test_bracketed_row_key(self):
        assert resolve_field({"  [Sales Amount]  ": 42}, "Sales Amount") == 42

    def test_bracketed_identifier(self):
        assert resolve_field({"Sales Amount": 7}, "[Sales Amount]") == 7

    def test_case_insensitive(self):
        assert resolve_field({"REGION": "East"}, "region") == "East"

    def test_case_insensitive_name(self):
        assert resolve_field({"total sales": 3}, "agg_1", "Total Sales") == 3

    def test_first_tier_wins(self):
        row = {"Sales": 1, "[Sales]": 2}
        assert resolve_field(row, "Sales") == 1

    def test_not_found_returns_default(self):
        assert resolve_field({"a": 1}, "b") is None
        assert resolve_field({"a": 1}, "b", default="-") == "-"

    def test_none_value_is_not_a_miss(self):
        assert find_field_key({"Sales": None}, "Sales") == "Sales"
        assert resolve_field({"Sales": None}, "Sales", default=0) is None

    def test_non_mapping_row(self):
        assert find_field_key(None, "Sales") is None


class TestBuildFieldMapping:
    def test_exact_and_substring(self):
        first = {"Region": "East", "SUM(Sales)": 1}
        mapping, unmapped = build_field_mapping(first, [ColumnSpec(id="Region"), ColumnSpec(id="Sales")])
        assert mapping == {"Region": "Region", "Sales": "SUM(Sales)"}
        assert unmapped == []

    def test_unmapped_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            mapping, unmapped = build_field_mapping({"Region": "East"}, [ColumnSpec(id="Profit")])
        assert mapping == {}
        assert unmapped == ["Profit"]
        assert "Profit" in caplog.text

    def test_empty_first_row(self):
        mapping, unmapped = build_field_mapping({}, [ColumnSpec(id="Sales")])
        assert mapping == {}
        assert unmapped == ["Sales"]


class TestReadColumn:
    def test_cached_key_preferred(self):
        col = ColumnSpec(id="Sales")
        assert read_column({"SUM(Sales)": 5}, col, {"Sales": "SUM(Sales)"}) == 5

    def test_falls_back_when_cached_key_absent(self):
        col = ColumnSpec(id="Sales")
        assert read_column({"[Sales]": 9}, col, {"Sales": "SUM(Sales)"}) == 9

    def test_without_mapping(self):
        assert read_column({"sales": 4}, ColumnSpec(id="Sales")) == 4
