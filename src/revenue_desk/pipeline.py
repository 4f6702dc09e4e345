"""Parsing pipeline — raw workbook grids to validated rows. Pure functions."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from revenue_desk.coerce import coerce_amount, coerce_date
from revenue_desk.columns import NOT_FOUND, resolve_columns
from revenue_desk.io import read_workbook
from revenue_desk.models import (
    CellValue,
    ColumnIndices,
    ParsedRow,
    ParsedSheet,
    ParseResult,
    Sheet,
    Workbook,
)
from revenue_desk.scanner import detect_header_row, is_blank, is_empty_or_summary_row
from revenue_desk.settings import Settings

logger = logging.getLogger(__name__)

ERR_DATE = "Invalid or missing date"
ERR_AMOUNT = "Invalid or missing amount"
ERR_DISTRIBUTOR = "Missing distributor"


# ── Row normalisation ───────────────────────────────────────────


def _cell(row: Sequence[CellValue], index: int) -> CellValue:
    if index == NOT_FOUND or index >= len(row):
        return None
    return row[index]


def _clean_text(value: Any) -> str | None:
    if is_blank(value):
        return None
    text = str(value).strip()
    return text or None


def _raw_data(row: Sequence[CellValue], headers: Sequence[str]) -> dict[str, CellValue]:
    raw: dict[str, CellValue] = {}
    for idx, header in enumerate(headers):
        if header and idx < len(row) and not is_blank(row[idx]):
            raw[header] = row[idx]
    return raw


def normalize_row(
    row: Sequence[CellValue],
    headers: Sequence[str],
    columns: ColumnIndices,
    row_number: int,
) -> ParsedRow:
    """Build a ``ParsedRow`` from one raw data row.

    Date, amount and distributor are mandatory; their errors are recorded in
    that order. The row is never dropped here, only flagged.
    """
    parsed_date = coerce_date(_cell(row, columns.date))
    amount = coerce_amount(_cell(row, columns.amount))
    distributor = _clean_text(_cell(row, columns.distributor))
    description = _clean_text(_cell(row, columns.description))

    errors: list[str] = []
    if parsed_date is None:
        errors.append(ERR_DATE)
    if amount is None or math.isnan(amount):
        errors.append(ERR_AMOUNT)
    if distributor is None:
        errors.append(ERR_DISTRIBUTOR)

    return ParsedRow(
        date=parsed_date,
        amount=amount,
        distributor=distributor,
        description=description,
        raw_data=_raw_data(row, headers),
        row_number=row_number,
        errors=tuple(errors),
    )


# ── Sheet / workbook parsing ────────────────────────────────────


def parse_sheet(sheet: Sheet, settings: Settings | None = None) -> ParsedSheet:
    """Detect the header, resolve columns once, then normalise every data row."""
    settings = settings or Settings()
    header_index, headers = detect_header_row(
        sheet, settings.aliases, scan_rows=settings.header_scan_rows
    )
    columns = resolve_columns(headers, settings.aliases)

    end = sheet.first_row + len(sheet.rows)
    rows: list[ParsedRow] = []
    skipped = 0
    for i, r in enumerate(range(header_index + 1, end)):
        raw_row = sheet.row_at(r)
        if is_empty_or_summary_row(raw_row, settings.summary_keywords):
            skipped += 1
            continue
        rows.append(normalize_row(raw_row, headers, columns, header_index + i + 2))

    logger.debug(
        "Sheet %r: header row %d, columns %s, %d rows emitted, %d skipped",
        sheet.name,
        header_index,
        columns.to_dict(),
        len(rows),
        skipped,
    )
    return ParsedSheet(
        sheet_name=sheet.name,
        rows=tuple(rows),
        header_row=header_index,
        headers=tuple(headers),
        columns=columns,
    )


def parse_workbook(workbook: Workbook, settings: Settings | None = None) -> ParseResult:
    """Parse every sheet in declared order and tally the emitted rows."""
    settings = settings or Settings()
    sheets: list[ParsedSheet] = []
    valid = 0
    invalid = 0
    for sheet in workbook.sheets:
        parsed = parse_sheet(sheet, settings)
        sheets.append(parsed)
        valid += parsed.valid_rows
        invalid += parsed.invalid_rows

    logger.info(
        "Parsed %d sheet(s): %d rows, %d valid, %d invalid",
        len(sheets),
        valid + invalid,
        valid,
        invalid,
    )
    return ParseResult(
        sheets=tuple(sheets),
        total_rows=valid + invalid,
        valid_rows=valid,
        invalid_rows=invalid,
    )


def parse_excel(
    source: bytes | Path, *, settings: Settings | None = None, filename: str | None = None
) -> ParseResult:
    """Decode *source* and parse it.

    Raises
    ------
    WorkbookDecodeError
        If *source* is not a readable ``.xls``/``.xlsx`` workbook.
    """
    return parse_workbook(read_workbook(source, filename=filename), settings)
