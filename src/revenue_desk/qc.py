"""Parse report persistence."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from revenue_desk.io import write_json
from revenue_desk.models import ParseResult

PARSE_REPORT_NAME = "parse_report.json"


def parse_report_dict(
    result: ParseResult, *, source: str = "", sha256: str = "", error_limit: int = 50
) -> dict[str, Any]:
    """Summarise *result* per sheet plus the first *error_limit* row errors."""
    errors = result.row_errors()
    sheets: list[dict[str, Any]] = []
    for sheet in result.sheets:
        sheets.append(
            {
                "sheet_name": sheet.sheet_name,
                "header_row": sheet.header_row,
                "headers": list(sheet.headers),
                "columns": sheet.columns.to_dict(),
                "rows": len(sheet.rows),
                "valid_rows": sheet.valid_rows,
                "invalid_rows": sheet.invalid_rows,
            }
        )

    return {
        "source": source,
        "sha256": sha256,
        "sheets": sheets,
        "total_rows": result.total_rows,
        "valid_rows": result.valid_rows,
        "invalid_rows": result.invalid_rows,
        "error_count": len(errors),
        "errors": errors[:error_limit],
    }


def write_parse_report(
    out_dir: Path,
    result: ParseResult,
    *,
    source: str = "",
    sha256: str = "",
    error_limit: int = 50,
) -> Path:
    """Write ``parse_report.json`` into *out_dir* and return the path."""
    payload = parse_report_dict(result, source=source, sha256=sha256, error_limit=error_limit)
    return write_json(Path(out_dir) / PARSE_REPORT_NAME, payload)
