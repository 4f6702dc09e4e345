from __future__ import annotations

from collections.abc import Iterator
from io import BytesIO
from typing import Any

import pytest
from openpyxl import Workbook

from revenue_desk.logging_config import reset_logging


def make_xlsx(sheets: dict[str, list[list[Any]]], *, start_row: int = 1) -> bytes:
    """Build an .xlsx payload; ``None`` cells are left unwritten."""
    wb = Workbook()
    default = wb.active
    if default is not None:
        wb.remove(default)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for r_idx, row in enumerate(rows, start_row):
            for c_idx, value in enumerate(row, 1):
                if value is not None:
                    ws.cell(row=r_idx, column=c_idx, value=value)
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture(autouse=True)
def _clean_logging() -> Iterator[None]:
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def sales_rows() -> list[list[Any]]:
    return [
        ["Date", "Distributor", "Amount", "Particulars"],
        ["2024-01-15", "Krishna Books", "1000", "Hindi readers"],
        ["Total", "", "1000", None],
        ["2024-02-01", "", "500", None],
    ]


@pytest.fixture
def sales_xlsx(sales_rows: list[list[Any]]) -> bytes:
    return make_xlsx({"Sales": sales_rows})


@pytest.fixture
def xlsx_factory() -> Any:
    return make_xlsx
