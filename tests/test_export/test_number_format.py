"""Tests for number/date display formatting and spreadsheet format codes."""

from __future__ import annotations

from datetime import datetime

from worksheet_export.export.number_format import (
    excel_date_format,
    excel_number_format,
    format_date_value,
    format_number_value,
    parse_date,
)
from worksheet_export.pivot.models import DateFormat, NumberFormat


class TestFormatNumber:
    def test_defaults(self):
        assert format_number_value(1234.5, NumberFormat()) == "1,234.50"

    def test_no_separator(self):
        assert format_number_value(1234567, NumberFormat(decimal_places=0, thousand_separator=False)) == "1234567"

    def test_currency(self):
        fmt = NumberFormat(display_type="currency", currency_symbol="€", decimal_places=0)
        assert format_number_value(1234.4, fmt) == "€1,234"

    def test_percentage(self):
        assert format_number_value(0.256, NumberFormat(display_type="percentage", decimal_places=1)) == "25.6%"

    def test_scientific(self):
        assert format_number_value(12345, NumberFormat(display_type="scientific")) == "1.23e+04"

    def test_negative_styles(self):
        assert format_number_value(-50, NumberFormat(decimal_places=1)) == "-50.0"
        assert format_number_value(-50, NumberFormat(decimal_places=1, negative_format="parentheses")) == "(50.0)"
        assert format_number_value(-50, NumberFormat(decimal_places=1, negative_format="(1234)")) == "(50.0)"
        assert format_number_value(-50, NumberFormat(decimal_places=1, negative_format="1234-")) == "50.0-"

    def test_non_numeric(self):
        assert format_number_value("abc", NumberFormat()) == ""
        assert format_number_value(None, NumberFormat()) == ""

    def test_numeric_text(self):
        assert format_number_value("12.5", NumberFormat(decimal_places=1)) == "12.5"

    def test_without_format(self):
        assert format_number_value(3.0) == "3"
        assert format_number_value(1.5) == "1.5"


class TestFormatDate:
    def test_named_patterns(self):
        assert format_date_value("2024-03-05", DateFormat(pattern="short")) == "03/05/2024"
        assert format_date_value("2024-03-05", DateFormat(pattern="medium")) == "Mar 5, 2024"
        assert format_date_value("2024-03-05", DateFormat(pattern="long")) == "March 5, 2024"
        assert format_date_value("2024-03-05", DateFormat(pattern="full")) == "Tuesday, March 5, 2024"
        assert format_date_value("2024-03-05", DateFormat(pattern="ISO")) == "2024-03-05"

    def test_custom_pattern(self):
        fmt = DateFormat(pattern="custom", custom_pattern="dd/MM/yyyy")
        assert format_date_value("2024-03-05", fmt) == "05/03/2024"

    def test_datetime_input(self):
        assert format_date_value(datetime(2024, 12, 31), DateFormat(pattern="ISO")) == "2024-12-31"

    def test_unparseable_returned_as_text(self):
        assert format_date_value("not a date", DateFormat()) == "not a date"

    def test_empty(self):
        assert format_date_value(None) == ""

    def test_parse_date_rejects_numbers(self):
        assert parse_date(45000) is None
        assert parse_date("2024-03-05") == datetime(2024, 3, 5)


class TestExcelFormats:
    def test_number_codes(self):
        assert excel_number_format(NumberFormat()) == "#,##0.00"
        assert excel_number_format(NumberFormat(decimal_places=0, thousand_separator=False)) == "0"
        assert excel_number_format(NumberFormat(display_type="currency")) == "$#,##0.00"
        assert excel_number_format(NumberFormat(display_type="percentage", decimal_places=1)) == "#,##0.0%"

    def test_negative_codes(self):
        fmt = NumberFormat(decimal_places=0, thousand_separator=False, negative_format="parentheses")
        assert excel_number_format(fmt) == "0;(0)"
        fmt = NumberFormat(decimal_places=0, thousand_separator=False, negative_format="red")
        assert excel_number_format(fmt) == "0;[Red]-0"

    def test_date_codes(self):
        assert excel_date_format(None) == "mm/dd/yyyy"
        assert excel_date_format(DateFormat(pattern="ISO")) == "yyyy-mm-dd"
        assert excel_date_format(DateFormat(pattern="custom", custom_pattern="d-mmm")) == "d-mmm"
