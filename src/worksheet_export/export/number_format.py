"""Display formatting for numbers and dates, and spreadsheet format codes."""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from typing import Any

import pandas as pd

from worksheet_export.pivot.models import DateFormat, NumberFormat

logger = logging.getLogger(__name__)


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f


def _negative_style(fmt: NumberFormat) -> str:
    style = fmt.negative_format or "-1234"
    return {"minus": "-1234", "parentheses": "(1234)"}.get(style, style)


def format_number_value(value: Any, fmt: NumberFormat | None = None) -> str:
    """Render *value* according to *fmt*; non-numeric input renders as ``""``."""
    number = _to_float(value)
    if number is None:
        return ""
    if fmt is None:
        return str(int(number)) if number.is_integer() else repr(number)

    decimals = 2 if fmt.decimal_places is None else fmt.decimal_places
    display = fmt.display_type or "number"
    separator = True if fmt.thousand_separator is None else fmt.thousand_separator

    if display == "scientific":
        return f"{number:.{decimals}e}"

    shown = number * 100 if display == "percentage" else number
    text = f"{abs(shown):,.{decimals}f}" if separator else f"{abs(shown):.{decimals}f}"
    if display == "currency":
        text = f"{fmt.currency_symbol or '$'}{text}"
    elif display == "percentage":
        text = f"{text}%"

    if number >= 0:
        return text
    style = _negative_style(fmt)
    if style == "(1234)":
        return f"({text})"
    if style == "1234-":
        return f"{text}-"
    return f"-{text}"


# Date token patterns (MM/dd/yyyy style) to strftime directives, longest first.
_DATE_TOKENS = [
    ("yyyy", "%Y"), ("YYYY", "%Y"), ("yy", "%y"), ("YY", "%y"),
    ("MMMM", "%B"), ("MMM", "%b"), ("MM", "%m"), ("M", "%-m"),
    ("EEEE", "%A"), ("EEE", "%a"),
    ("dd", "%d"), ("DD", "%d"), ("d", "%-d"), ("D", "%-d"),
    ("HH", "%H"), ("hh", "%I"), ("h", "%-I"),
    ("mm", "%M"), ("ss", "%S"), ("a", "%p"), ("A", "%p"),
]
_TOKEN_RE = re.compile("|".join(re.escape(token) for token, _ in _DATE_TOKENS))
_TOKEN_MAP = dict(_DATE_TOKENS)

_NAMED_PATTERNS = {
    "short": "%m/%d/%Y",
    "medium": "%b %-d, %Y",
    "long": "%B %-d, %Y",
    "full": "%A, %B %-d, %Y",
    "ISO": "%Y-%m-%d",
}


def _strftime_pattern(pattern: str) -> str:
    return _TOKEN_RE.sub(lambda m: _TOKEN_MAP[m.group(0)], pattern.replace("%", "%%"))


def _format_portable(moment: datetime, pattern: str) -> str:
    # "%-d" style directives are not portable; strip the padding by hand.
    parts = re.split(r"(%-[dmI])", pattern)
    out = []
    for part in parts:
        if part in ("%-d", "%-m", "%-I"):
            out.append(str(int(moment.strftime(part.replace("-", "")))))
        elif part:
            out.append(moment.strftime(part))
    return "".join(out)


def parse_date(value: Any) -> datetime | None:
    """Parse a date-like value, or None when it is not a date."""
    if isinstance(value, datetime):
        return value
    if value is None or value == "" or isinstance(value, (bool, int, float)):
        return None
    stamp = pd.to_datetime(value, errors="coerce")
    if stamp is None or pd.isna(stamp):
        return None
    return stamp.to_pydatetime()


def format_date_value(value: Any, fmt: DateFormat | None = None) -> str:
    """Render *value* as a date; unparseable input is returned as text."""
    if value is None or value == "":
        return ""
    moment = parse_date(value)
    if moment is None:
        return str(value)
    if fmt is None:
        return _format_portable(moment, _NAMED_PATTERNS["short"])

    if fmt.pattern == "custom" and fmt.custom_pattern:
        pattern = _strftime_pattern(fmt.custom_pattern)
    elif fmt.pattern in _NAMED_PATTERNS:
        pattern = _NAMED_PATTERNS[fmt.pattern]
    else:
        pattern = _strftime_pattern(fmt.pattern)

    try:
        return _format_portable(moment, pattern)
    except ValueError:
        logger.warning("Could not format date %r with pattern %r", value, pattern)
        return moment.date().isoformat()


# ---------------------------------------------------------------------------
# Spreadsheet format codes
# ---------------------------------------------------------------------------


def excel_number_format(fmt: NumberFormat) -> str:
    """Spreadsheet number-format code for *fmt*."""
    decimals = 2 if fmt.decimal_places is None else fmt.decimal_places
    separator = True if fmt.thousand_separator is None else fmt.thousand_separator
    code = ("#,##0" if separator else "0") + ("." + "0" * decimals if decimals > 0 else "")

    if fmt.display_type == "currency":
        code = f"{fmt.currency_symbol or '$'}{code}"
    elif fmt.display_type == "percentage":
        code = f"{code}%"
    elif fmt.display_type == "scientific":
        code = "0.00E+00"

    negative = fmt.negative_format
    if negative in ("parentheses", "(1234)"):
        code = f"{code};({code})"
    elif negative == "red":
        code = f"{code};[Red]-{code}"
    elif negative == "1234-":
        code = f"{code};{code}-"
    return code


_EXCEL_DATE_PATTERNS = {
    "MM/DD/YYYY": "mm/dd/yyyy",
    "DD/MM/YYYY": "dd/mm/yyyy",
    "YYYY-MM-DD": "yyyy-mm-dd",
    "MMM D, YYYY": "mmm d, yyyy",
    "MMMM D, YYYY": "mmmm d, yyyy",
    "MM/DD/YYYY HH:mm": "mm/dd/yyyy hh:mm",
    "YYYY-MM-DD HH:mm": "yyyy-mm-dd hh:mm",
    "DD MMM YYYY HH:mm": "dd mmm yyyy hh:mm",
    "short": "mm/dd/yyyy",
    "medium": "mmm d, yyyy",
    "long": "mmmm d, yyyy",
    "full": "dddd, mmmm d, yyyy",
    "ISO": "yyyy-mm-dd",
}


def excel_date_format(fmt: DateFormat | None) -> str:
    if fmt is None or not fmt.pattern:
        return "mm/dd/yyyy"
    if fmt.pattern == "custom" and fmt.custom_pattern:
        return fmt.custom_pattern
    return _EXCEL_DATE_PATTERNS.get(fmt.pattern, "mm/dd/yyyy")
