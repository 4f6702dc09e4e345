from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pytest

from revenue_desk.columns import NOT_FOUND
from revenue_desk.exceptions import WorkbookDecodeError
from revenue_desk.models import ColumnIndices, Sheet, Workbook
from revenue_desk.pipeline import (
    ERR_AMOUNT,
    ERR_DATE,
    ERR_DISTRIBUTOR,
    normalize_row,
    parse_excel,
    parse_sheet,
    parse_workbook,
)
from revenue_desk.settings import Settings

HEADERS = ["Date", "Amount", "Distributor", "Description"]
COLUMNS = ColumnIndices(date=0, amount=1, distributor=2, description=3)


# ── normalize_row ───────────────────────────────────────────────


def test_normalize_row_valid() -> None:
    row = normalize_row(["2024-01-15", "₹1,000", " Krishna Books ", "Hindi"], HEADERS, COLUMNS, 2)

    assert row.is_valid is True
    assert row.errors == ()
    assert row.date == date(2024, 1, 15)
    assert row.amount == 1000.0
    assert row.distributor == "Krishna Books"
    assert row.description == "Hindi"
    assert row.row_number == 2


def test_normalize_row_reports_errors_in_fixed_order() -> None:
    row = normalize_row([None, None, "  ", "only a note"], HEADERS, COLUMNS, 7)

    assert row.is_valid is False
    assert row.errors == (ERR_DATE, ERR_AMOUNT, ERR_DISTRIBUTOR)


def test_normalize_row_bad_amount_text() -> None:
    row = normalize_row(["2024-01-15", "abc", "A"], HEADERS, COLUMNS, 3)

    assert row.amount is None
    assert row.errors == (ERR_AMOUNT,)


def test_normalize_row_nan_amount_is_invalid() -> None:
    row = normalize_row(["2024-01-15", float("nan"), "A"], HEADERS, COLUMNS, 3)

    assert row.errors == (ERR_AMOUNT,)


def test_normalize_row_raw_data_keeps_only_filled_named_cells() -> None:
    row = normalize_row(
        ["2024-01-15", 10, "A", None, "extra"], HEADERS + [""], COLUMNS, 2
    )

    assert dict(row.raw_data) == {"Date": "2024-01-15", "Amount": 10, "Distributor": "A"}


def test_normalize_row_with_unresolved_columns() -> None:
    row = normalize_row(["x", "y"], ["a", "b"], ColumnIndices(), 2)

    assert row.date is None and row.amount is None and row.distributor is None
    assert row.description is None
    assert row.errors == (ERR_DATE, ERR_AMOUNT, ERR_DISTRIBUTOR)


def test_normalize_row_short_row_reads_missing_cells_as_none() -> None:
    row = normalize_row(["2024-01-15"], HEADERS, COLUMNS, 2)

    assert row.errors == (ERR_AMOUNT, ERR_DISTRIBUTOR)


def test_parsed_row_is_immutable() -> None:
    row = normalize_row(["2024-01-15", 1, "A"], HEADERS, COLUMNS, 2)

    with pytest.raises(dataclasses.FrozenInstanceError):
        row.amount = 5.0  # type: ignore[misc]
    with pytest.raises(TypeError):
        row.raw_data["Date"] = "changed"  # type: ignore[index]


# ── parse_sheet ─────────────────────────────────────────────────


def test_parse_sheet_skips_summary_rows_and_flags_invalid(sales_rows: list[list[Any]]) -> None:
    parsed = parse_sheet(Sheet(name="Sales", rows=sales_rows))

    assert parsed.header_row == 0
    assert parsed.headers == ("Date", "Distributor", "Amount", "Particulars")
    assert parsed.columns == ColumnIndices(date=0, amount=2, distributor=1, description=3)
    assert [r.row_number for r in parsed.rows] == [2, 4]
    assert parsed.valid_rows == 1
    assert parsed.invalid_rows == 1
    assert parsed.rows[1].errors == (ERR_DISTRIBUTOR,)
    assert parsed.rows[1].amount == 500.0


def test_parse_sheet_row_numbers_follow_detected_header() -> None:
    sheet = Sheet(
        name="S",
        rows=[
            ["Sales register"],
            [None],
            [None],
            ["Date", "Amount", "Distributor"],
            ["2024-01-01", 10, "A"],
            [None, None, None],
            ["2024-01-03", 20, "B"],
        ],
    )

    parsed = parse_sheet(sheet)

    assert parsed.header_row == 3
    assert [r.row_number for r in parsed.rows] == [5, 7]


def test_parse_sheet_without_header_uses_first_row() -> None:
    sheet = Sheet(name="S", rows=[["foo", "bar"], ["x", "y"]])

    parsed = parse_sheet(sheet)

    assert parsed.header_row == 0
    assert parsed.columns == ColumnIndices()
    assert parsed.columns.date == NOT_FOUND
    assert len(parsed.rows) == 1
    assert parsed.rows[0].errors == (ERR_DATE, ERR_AMOUNT, ERR_DISTRIBUTOR)


def test_parse_sheet_header_only_and_empty_sheets() -> None:
    assert parse_sheet(Sheet(name="H", rows=[["Date", "Amount"]])).rows == ()
    assert parse_sheet(Sheet(name="E", rows=[])).rows == ()


def test_parse_sheet_is_deterministic(sales_rows: list[list[Any]]) -> None:
    sheet = Sheet(name="Sales", rows=sales_rows)

    first = parse_sheet(sheet)
    second = parse_sheet(sheet)

    assert [r.to_dict() for r in first.rows] == [r.to_dict() for r in second.rows]
    assert first.columns == second.columns


def test_parse_sheet_honours_extra_aliases() -> None:
    sheet = Sheet(
        name="S",
        rows=[["Bill On", "Net Sales", "Stockist"], [datetime(2024, 5, 2), 75, "Z"]],
    )
    settings = Settings().with_extra_aliases(
        {"date": ["Bill On"], "amount": ["Net Sales"], "distributor": ["Stockist"]}
    )

    parsed = parse_sheet(sheet, settings)

    assert parsed.valid_rows == 1
    assert parsed.rows[0].date == date(2024, 5, 2)


def test_parse_sheet_logs_detection_at_debug(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="revenue_desk")

    parse_sheet(Sheet(name="Jan", rows=[["Date"], ["2024-01-01"]]))

    assert any("Sheet 'Jan': header row 0" in r.getMessage() for r in caplog.records)


# ── parse_workbook / parse_excel ────────────────────────────────


def test_parse_workbook_tallies_all_sheets(sales_rows: list[list[Any]]) -> None:
    workbook = Workbook(
        sheets=[
            Sheet(name="Jan", rows=sales_rows),
            Sheet(name="Feb", rows=[["Date", "Amount", "Party"], ["2024-02-02", 5, "B"]]),
            Sheet(name="Blank", rows=[]),
        ]
    )

    result = parse_workbook(workbook)

    assert [s.sheet_name for s in result.sheets] == ["Jan", "Feb", "Blank"]
    assert result.total_rows == 3
    assert result.valid_rows == 2
    assert result.invalid_rows == 1
    assert result.row_errors() == [f"Jan Row 4: {ERR_DISTRIBUTOR}"]


def test_parse_workbook_empty() -> None:
    result = parse_workbook(Workbook())

    assert result.sheets == ()
    assert result.total_rows == 0


def test_parse_excel_from_bytes(sales_xlsx: bytes) -> None:
    result = parse_excel(sales_xlsx)

    assert result.total_rows == 2
    assert result.valid_rows == 1
    assert result.invalid_rows == 1
    assert result.row_errors() == [f"Row 4: {ERR_DISTRIBUTOR}"]


def test_parse_excel_offset_used_range(xlsx_factory: Any, tmp_path: Path) -> None:
    payload = xlsx_factory(
        {
            "Sales": [
                ["Date", "Amount", "Distributor"],
                [datetime(2024, 4, 1), 250, "Gita Press"],
            ]
        },
        start_row=4,
    )
    path = tmp_path / "sales.xlsx"
    path.write_bytes(payload)

    result = parse_excel(path)
    sheet = result.sheets[0]

    assert sheet.header_row == 3
    assert sheet.rows[0].row_number == 5
    assert sheet.rows[0].date == date(2024, 4, 1)
    assert sheet.rows[0].amount == 250.0


def test_parse_excel_rejects_non_workbooks() -> None:
    with pytest.raises(WorkbookDecodeError):
        parse_excel(b"date,amount\n2024-01-01,5\n", filename="sales.xlsx")
