"""I/O helpers that decode uploaded workbooks and write JSON artifacts."""

from __future__ import annotations

import json
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any

from openpyxl import load_workbook

from revenue_desk.exceptions import WorkbookDecodeError
from revenue_desk.models import CellValue, Sheet, Workbook

_XLSX_MAGIC = b"PK\x03\x04"
_XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

# ── Loading ──────────────────────────────────────────────────────


def _cell_value(value: Any) -> CellValue:
    if value is None or isinstance(value, (str, int, float, date)):
        return value
    return str(value)


def _read_xlsx(payload: bytes) -> Workbook:
    wb = load_workbook(BytesIO(payload), data_only=True)
    sheets: list[Sheet] = []
    for ws in wb.worksheets:
        rows = [
            [_cell_value(v) for v in row]
            for row in ws.iter_rows(
                min_row=ws.min_row,
                max_row=ws.max_row,
                min_col=ws.min_column,
                max_col=ws.max_column,
                values_only=True,
            )
        ]
        sheets.append(Sheet(name=ws.title, rows=rows, first_row=ws.min_row - 1))
    wb.close()
    return Workbook(sheets=sheets)


def _xls_date(xlrd: Any, value: float, datemode: int) -> CellValue:
    # xldate_as_datetime accepts any float; only the tuple conversion checks
    # the serial. A rejected cell keeps its raw value.
    try:
        xlrd.xldate_as_tuple(value, datemode)
    except xlrd.xldate.XLDateError:
        return value
    return xlrd.xldate_as_datetime(value, datemode)


def _read_xls(payload: bytes) -> Workbook:
    try:
        import xlrd
    except ImportError as exc:
        raise WorkbookDecodeError(
            "Unsupported .xls input unless 'xlrd' is installed. "
            "Either convert to .xlsx or add dependency: pip install xlrd"
        ) from exc

    book = xlrd.open_workbook(file_contents=payload)
    sheets: list[Sheet] = []
    for xs in book.sheets():
        rows: list[list[CellValue]] = []
        for r in range(xs.nrows):
            row: list[CellValue] = []
            for cell in xs.row(r):
                if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
                    row.append(None)
                elif cell.ctype == xlrd.XL_CELL_DATE:
                    row.append(_xls_date(xlrd, cell.value, book.datemode))
                elif cell.ctype == xlrd.XL_CELL_BOOLEAN:
                    row.append(bool(cell.value))
                else:
                    row.append(cell.value)
            rows.append(row)
        sheets.append(Sheet(name=xs.name, rows=rows))
    return Workbook(sheets=sheets)


def read_workbook(source: bytes | Path, *, filename: str | None = None) -> Workbook:
    """Decode an ``.xlsx`` or legacy ``.xls`` workbook into raw sheet grids.

    The format is detected from the payload signature, not the file name.

    Raises
    ------
    FileNotFoundError
        If *source* is a path that does not exist.
    WorkbookDecodeError
        If the payload is not a readable workbook. No partial result is
        returned.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Input file not found: {path}")
        if path.is_dir():
            raise WorkbookDecodeError(f"Input path is a directory, not a file: {path}")
        filename = filename or path.name
        payload = path.read_bytes()
    else:
        payload = bytes(source)

    label = filename or "workbook"
    if not payload:
        raise WorkbookDecodeError(f"Could not read {label}: file is empty")

    try:
        if payload.startswith(_XLSX_MAGIC):
            return _read_xlsx(payload)
        if payload.startswith(_XLS_MAGIC):
            return _read_xls(payload)
    except WorkbookDecodeError:
        raise
    except Exception as exc:
        raise WorkbookDecodeError(f"Could not read {label}: {exc}") from exc
    raise WorkbookDecodeError(
        f"Could not read {label}: not an .xls or .xlsx workbook"
    )


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def to_json_text(data: Any) -> str:
    """Serialize *data* deterministically (sorted keys, ISO dates)."""
    return json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = to_json_text(data)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path


def read_json(path: Path, default: Any = None) -> Any:
    """Load JSON from *path*, or return *default* when it does not exist."""
    path = Path(path)
    if not path.exists():
        return default
    return json.loads(path.read_text(encoding="utf-8"))
