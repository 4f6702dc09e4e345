from __future__ import annotations

import json
from pathlib import Path

from revenue_desk.models import ParseResult, Sheet, Workbook
from revenue_desk.pipeline import parse_workbook
from revenue_desk.qc import PARSE_REPORT_NAME, parse_report_dict, write_parse_report


def _result() -> ParseResult:
    return parse_workbook(
        Workbook(
            sheets=[
                Sheet(
                    name="Jan",
                    rows=[
                        ["Date", "Amount", "Distributor"],
                        ["2024-01-01", 10, "A"],
                        ["2024-01-02", 5, None],
                        ["bad", 5, "B"],
                    ],
                )
            ]
        )
    )


def test_write_parse_report_writes_expected_contract(tmp_path: Path) -> None:
    out = write_parse_report(tmp_path, _result(), source="jan.xlsx", sha256="abc")

    assert out == tmp_path / PARSE_REPORT_NAME
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data == {
        "source": "jan.xlsx",
        "sha256": "abc",
        "sheets": [
            {
                "sheet_name": "Jan",
                "header_row": 0,
                "headers": ["Date", "Amount", "Distributor"],
                "columns": {"date": 0, "amount": 1, "distributor": 2, "description": -1},
                "rows": 3,
                "valid_rows": 1,
                "invalid_rows": 2,
            }
        ],
        "total_rows": 3,
        "valid_rows": 1,
        "invalid_rows": 2,
        "error_count": 2,
        "errors": ["Row 3: Missing distributor", "Row 4: Invalid or missing date"],
    }


def test_parse_report_caps_error_list_but_keeps_count() -> None:
    data = parse_report_dict(_result(), error_limit=1)

    assert data["error_count"] == 2
    assert data["errors"] == ["Row 3: Missing distributor"]
