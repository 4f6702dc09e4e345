"""Header detection and row classification for raw sheet grids."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from revenue_desk.columns import has_any_key_column
from revenue_desk.models import Sheet

HEADER_SCAN_ROWS = 10
SUMMARY_KEYWORDS: tuple[str, ...] = ("total", "sum", "grand total", "subtotal", "कुल", "योग")


def is_blank(value: Any) -> bool:
    """True for ``None`` and for strings that are empty after trimming."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def cell_text(value: Any) -> str:
    """String form of a header cell; falsy cells become ``""``."""
    if value is None or value == "" or value == 0:
        return ""
    return str(value)


def _row_text(sheet: Sheet, index: int, width: int) -> list[str]:
    row = sheet.row_at(index)
    return [cell_text(row[c]) if c < len(row) else "" for c in range(width)]


def detect_header_row(
    sheet: Sheet,
    aliases: Mapping[str, Sequence[str]] | None = None,
    *,
    scan_rows: int = HEADER_SCAN_ROWS,
) -> tuple[int, list[str]]:
    """Return ``(header_row_index, header_strings)`` for *sheet*.

    Only the first ``scan_rows + 1`` rows of the used range are examined.
    The first row on which date, amount or distributor resolves is the
    header. When none does, the first row of the used range is returned.
    """
    width = sheet.width
    start = sheet.first_row
    stop = min(start + scan_rows, sheet.last_row)
    for r in range(start, stop + 1):
        headers = _row_text(sheet, r, width)
        if has_any_key_column(headers, aliases):
            return r, headers
    return start, _row_text(sheet, start, width)


def is_empty_or_summary_row(
    row: Sequence[Any], keywords: Sequence[str] = SUMMARY_KEYWORDS
) -> bool:
    """True when *row* has no content or its first cell names a total line."""
    if all(is_blank(cell) for cell in row):
        return True
    first = cell_text(row[0]).lower().strip()
    return any(kw in first for kw in keywords)
