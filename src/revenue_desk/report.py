"""Excel report writer for Revenue_Report.xlsx."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo
from openpyxl.worksheet.worksheet import Worksheet

from revenue_desk.models import UploadRecord

REPORT_NAME = "Revenue_Report.xlsx"

BRAND = "2F5496"
HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(fill_type="solid", fgColor=BRAND)
TITLE_FONT = Font(bold=True, size=14, color=BRAND)
BOLD = Font(bold=True)
NOTE_FONT = Font(italic=True, size=10, color="CC6600")
BANDS = {
    "kpi": PatternFill(fill_type="solid", fgColor="D6E4F0"),
    "uploads": PatternFill(fill_type="solid", fgColor="FFF2CC"),
}

CURRENCY_FMT = "#,##0.00"
INT_FMT = "#,##0"
DATE_FMT = "yyyy-mm-dd"

# Number format per data-sheet column name.
_COL_FORMATS: dict[str, str] = {
    "date": DATE_FMT,
    "amount": CURRENCY_FMT,
    "revenue": CURRENCY_FMT,
    "transaction_count": INT_FMT,
}

_TRANSACTION_SHEET_COLUMNS = [
    "date",
    "year",
    "month",
    "quarter",
    "distributor",
    "amount",
    "description",
    "is_valid",
    "validation_errors",
]

_KPIS: tuple[tuple[str, str, str], ...] = (
    ("Total Revenue", "total_revenue", CURRENCY_FMT),
    ("This Month", "monthly_revenue", CURRENCY_FMT),
    ("This Quarter", "quarterly_revenue", CURRENCY_FMT),
    ("Distributors", "distributor_count", INT_FMT),
)

_WIDTH_SAMPLE = 300
_MAX_WIDTH = 40


def excel_value(val: Any) -> Any:
    """Convert *val* to something openpyxl writes safely.

    Lists are joined with ``"; "``, timestamps lose their timezone and text
    Excel would evaluate as a formula is prefixed with ``'``.
    """
    if isinstance(val, (list, tuple)):
        return "; ".join(str(v) for v in val)
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):
        return val

    if isinstance(val, pd.Timestamp):
        val = val.to_pydatetime()
    if isinstance(val, datetime):
        return val.replace(tzinfo=None)
    if isinstance(val, str) and not val.startswith("'"):
        if val.lstrip()[:1] in ("=", "+", "-", "@"):
            return f"'{val}"
    return val


def _column_widths(df: pd.DataFrame) -> list[float]:
    sample = df.head(_WIDTH_SAMPLE).astype(str)
    widths = []
    for col in df.columns:
        longest = max([len(str(col)), *sample[col].str.len().tolist()])
        widths.append(min(longest + 4, _MAX_WIDTH))
    return widths


def _write_frame(wb: Workbook, name: str, df: pd.DataFrame) -> Worksheet:
    """Write *df* as a styled data sheet, wrapped in an Excel table when non-empty."""
    ws = wb.create_sheet(title=name)
    columns = [str(c) for c in df.columns]
    if not columns:
        ws["A1"] = "No data"
        return ws

    ws.append(columns)
    for cell in ws[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", wrap_text=True)

    formats = [_COL_FORMATS.get(c.lower()) for c in columns]
    for values in df.itertuples(index=False, name=None):
        ws.append([excel_value(v) for v in values])
        for cell, fmt in zip(ws[ws.max_row], formats):
            if fmt:
                cell.number_format = fmt

    for idx, width in enumerate(_column_widths(df), 1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    ws.freeze_panes = "A2"

    if len(df):
        table = Table(
            displayName=f"{name}Table",
            ref=f"A1:{get_column_letter(len(columns))}{len(df) + 1}",
        )
        table.tableStyleInfo = TableStyleInfo(name="TableStyleMedium9", showRowStripes=True)
        ws.add_table(table)
    return ws


def _band(ws: Worksheet, row: int, band: str) -> None:
    for col in range(1, 5):
        ws.cell(row=row, column=col).fill = BANDS[band]


def _write_dashboard(
    wb: Workbook, summary: dict[str, Any], uploads: Sequence[UploadRecord]
) -> None:
    ws = wb.create_sheet(title="Dashboard")
    ws["A1"] = "Revenue Dashboard"
    ws["A1"].font = TITLE_FONT
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    ws["A2"] = f"Generated {generated}"
    ws["A2"].font = NOTE_FONT

    row = 4
    ws.cell(row=row, column=1, value="Key Metrics").font = BOLD
    _band(ws, row, "kpi")
    for label, key, fmt in _KPIS:
        row += 1
        ws.cell(row=row, column=1, value=label).font = BOLD
        value = ws.cell(row=row, column=2, value=summary.get(key, 0))
        value.number_format = fmt
        _band(ws, row, "kpi")

    row += 2
    ws.cell(row=row, column=1, value="Uploads").font = BOLD
    _band(ws, row, "uploads")
    if not uploads:
        row += 1
        ws.cell(row=row, column=1, value="No uploads")
        _band(ws, row, "uploads")
    for upload in uploads:
        row += 1
        ws.cell(row=row, column=1, value=excel_value(upload.original_name))
        ws.cell(row=row, column=2, value=upload.status)
        ws.cell(row=row, column=3, value=f"Rows: {upload.rows_extracted}")
        ws.cell(row=row, column=4, value=f"Normalized: {upload.rows_normalized}")
        _band(ws, row, "uploads")
        for err in upload.processing_errors[:5]:
            row += 1
            ws.cell(row=row, column=1, value=f"⚠ {excel_value(err)}").font = NOTE_FONT
            _band(ws, row, "uploads")

    for letter, width in zip("ABCD", (28, 22, 18, 18)):
        ws.column_dimensions[letter].width = width


def write_report(
    out_dir: Path,
    transactions: pd.DataFrame,
    summary: dict[str, Any],
    monthly: pd.DataFrame,
    quarterly: pd.DataFrame,
    distributors: pd.DataFrame,
    daily: pd.DataFrame,
    uploads: Sequence[UploadRecord] = (),
) -> Path:
    """Write ``Revenue_Report.xlsx`` into *out_dir* and return the path.

    The workbook is saved to a temporary name first and moved into place.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    if wb.active is not None:
        wb.remove(wb.active)

    _write_dashboard(wb, summary, uploads)
    for name, frame in (
        ("Monthly", monthly),
        ("Quarterly", quarterly),
        ("Distributors", distributors),
        ("Daily", daily),
    ):
        _write_frame(wb, name, frame)
    ledger = transactions.reindex(columns=_TRANSACTION_SHEET_COLUMNS)
    _write_frame(wb, "Transactions", ledger.sort_values("date", kind="stable"))

    report_path = out_dir / REPORT_NAME
    tmp_path = out_dir / "Revenue_Report.tmp.xlsx"
    wb.save(tmp_path)
    tmp_path.replace(report_path)
    return report_path
