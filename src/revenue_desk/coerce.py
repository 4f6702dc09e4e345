"""Cell value coercion from raw spreadsheet cells to dates and amounts.

Every coercer returns ``None`` for absent or unparseable input and never
raises.
"""

from __future__ import annotations

import math
import re
import warnings
from datetime import date, datetime
from typing import Any

import pandas as pd
from openpyxl.utils.datetime import from_excel

_NUMERIC_DMY_RE = re.compile(r"^(\d{1,2})([/-])(\d{1,2})([/-])(\d{4})$")
_CURRENCY_RE = re.compile(r"[₹$€£,\s]")
_PARENS_RE = re.compile(r"^\((.*)\)$")
# Words pandas resolves against the wall clock.
_RELATIVE_DATE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _from_serial(value: float) -> date | None:
    if not math.isfinite(value) or value <= 0:
        return None
    try:
        converted = from_excel(value)
    except (ValueError, OverflowError):
        return None
    if isinstance(converted, datetime):
        return converted.date()
    if isinstance(converted, date):
        return converted
    return None


def _generic_parse(text: str) -> date | None:
    if text.lower() in _RELATIVE_DATE_WORDS:
        return None
    match = _NUMERIC_DMY_RE.match(text)
    # Numeric slash/dash dates are month-first here; anything that fails is
    # retried day-first by the caller.
    fmt = f"%m{match.group(2)}%d{match.group(4)}%Y" if match else None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        parsed = pd.to_datetime(text, errors="coerce", format=fmt)
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.date()


def _day_first_parse(text: str) -> date | None:
    match = _NUMERIC_DMY_RE.match(text)
    if not match:
        return None
    day, _sep, month, _sep2, year = match.groups()
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def coerce_date(value: Any) -> date | None:
    """Convert a raw cell to a calendar date.

    * native dates pass through (datetimes are truncated to the day),
    * numbers are Excel serial day counts,
    * strings are parsed generically, then as ``DD/MM/YYYY`` / ``DD-MM-YYYY``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if pd.isna(value):
            return None
        return value.date()
    if isinstance(value, date):
        return value
    if _is_number(value):
        return _from_serial(float(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        return _generic_parse(text) or _day_first_parse(text)
    return None


def coerce_amount(value: Any) -> float | None:
    """Convert a raw cell to a signed monetary amount.

    Numbers pass through unchanged (including NaN, which the row normalizer
    rejects). Strings lose currency symbols, thousands commas and whitespace;
    ``(1,200.00)`` is read as negative. Anything left that is not a complete
    number yields ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if _is_number(value):
        return float(value)
    if not isinstance(value, str):
        return None

    token = _CURRENCY_RE.sub("", value)
    token = _PARENS_RE.sub(r"-\1", token)
    if token in {"", "-", "+"}:
        return None
    parsed = pd.to_numeric(token, errors="coerce")
    if pd.isna(parsed):
        return None
    return float(parsed)
