"""Data models used across the package.

Parse-time models (``ParsedRow``, ``ParsedSheet``, ``ParseResult``) are
frozen: once the parser emits them they are never changed. The record
models at the bottom are the durable documents written by the ingestion
orchestrator and may gain identifiers when persisted.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from numbers import Integral
from types import MappingProxyType
from typing import Any, Literal, Union

CellValue = Union[None, str, int, float, date, datetime]
UploadStatus = Literal["processing", "completed", "partial", "failed"]
UPLOAD_STATUSES: tuple[str, ...] = ("processing", "completed", "partial", "failed")


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


def fiscal_quarter(month: int) -> int:
    """Return the April–March fiscal quarter for a calendar *month* (1-12)."""
    if isinstance(month, bool) or not isinstance(month, Integral) or not 1 <= month <= 12:
        raise ValueError(f"month must be an integer in 1..12, got {month!r}")
    if month <= 3:
        return 4
    return (month - 4) // 3 + 1


def _parse_iso_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


# ── Workbook input ──────────────────────────────────────────────


@dataclass
class Sheet:
    """One named grid of raw cells covering a sheet's used range.

    ``first_row`` is the zero-based index of ``rows[0]`` in the original
    sheet, so header and row numbers can be reported in sheet coordinates.
    """

    name: str
    rows: list[list[CellValue]] = field(default_factory=list)
    first_row: int = 0

    def __post_init__(self) -> None:
        self.first_row = _to_non_negative_int(self.first_row, "first_row")

    @property
    def last_row(self) -> int:
        return self.first_row + max(len(self.rows), 1) - 1

    def row_at(self, index: int) -> list[CellValue]:
        """Return the row with absolute *index*, or an empty list."""
        local = index - self.first_row
        if 0 <= local < len(self.rows):
            return self.rows[local]
        return []

    @property
    def width(self) -> int:
        return max((len(r) for r in self.rows), default=0)


@dataclass
class Workbook:
    """Ordered collection of sheets decoded from one upload."""

    sheets: list[Sheet] = field(default_factory=list)

    @property
    def sheet_names(self) -> list[str]:
        return [s.name for s in self.sheets]


# ── Parse output ────────────────────────────────────────────────


@dataclass(frozen=True)
class ColumnIndices:
    """Resolved zero-based column index per role; ``-1`` means not found."""

    date: int = -1
    amount: int = -1
    distributor: int = -1
    description: int = -1

    def to_dict(self) -> dict[str, int]:
        return {
            "date": self.date,
            "amount": self.amount,
            "distributor": self.distributor,
            "description": self.description,
        }


@dataclass(frozen=True)
class ParsedRow:
    """One normalized data row.

    Contract invariant: ``is_valid == (len(errors) == 0)``.
    """

    date: date | None
    amount: float | None
    distributor: str | None
    description: str | None
    raw_data: Mapping[str, CellValue]
    row_number: int
    errors: tuple[str, ...] = ()
    is_valid: bool = field(init=False)

    def __post_init__(self) -> None:
        errors = tuple(_to_string_list(list(self.errors), "errors"))
        object.__setattr__(self, "errors", errors)
        object.__setattr__(self, "is_valid", not errors)
        object.__setattr__(self, "raw_data", MappingProxyType(dict(self.raw_data)))
        object.__setattr__(
            self, "row_number", _to_non_negative_int(self.row_number, "row_number")
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "amount": self.amount,
            "distributor": self.distributor,
            "description": self.description,
            "raw_data": dict(self.raw_data),
            "row_number": self.row_number,
            "is_valid": self.is_valid,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class ParsedSheet:
    sheet_name: str
    rows: tuple[ParsedRow, ...]
    header_row: int
    headers: tuple[str, ...]
    columns: ColumnIndices = field(default_factory=ColumnIndices)

    @property
    def valid_rows(self) -> int:
        return sum(1 for r in self.rows if r.is_valid)

    @property
    def invalid_rows(self) -> int:
        return len(self.rows) - self.valid_rows


@dataclass(frozen=True)
class ParseResult:
    """Workbook-level parse outcome.

    Contract invariant: ``total_rows == valid_rows + invalid_rows`` and both
    sides equal the number of rows emitted across all sheets.
    """

    sheets: tuple[ParsedSheet, ...] = ()
    total_rows: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0

    def __post_init__(self) -> None:
        total = _to_non_negative_int(self.total_rows, "total_rows")
        valid = _to_non_negative_int(self.valid_rows, "valid_rows")
        invalid = _to_non_negative_int(self.invalid_rows, "invalid_rows")
        if total != valid + invalid:
            raise ValueError("total_rows must equal valid_rows + invalid_rows")
        emitted = sum(len(s.rows) for s in self.sheets)
        if total != emitted:
            raise ValueError("total_rows must equal the number of emitted rows")

    def iter_rows(self) -> Iterator[tuple[ParsedSheet, ParsedRow]]:
        for sheet in self.sheets:
            for row in sheet.rows:
                yield sheet, row

    def row_errors(self) -> list[str]:
        """``Row <n>: <errors>`` per invalid row, sheet-prefixed for multi-sheet books."""
        with_sheet = len(self.sheets) > 1
        messages: list[str] = []
        for sheet, row in self.iter_rows():
            if row.errors:
                prefix = f"{sheet.sheet_name} " if with_sheet else ""
                messages.append(f"{prefix}Row {row.row_number}: {', '.join(row.errors)}")
        return messages


# ── Durable records ─────────────────────────────────────────────


@dataclass
class UploadRecord:
    """Per-upload summary document."""

    filename: str
    original_name: str
    file_size: int = 0
    uploaded_at: str = ""
    uploaded_by: str = "system"
    sha256: str = ""
    status: str = "processing"
    sheets_processed: int = 0
    rows_extracted: int = 0
    rows_normalized: int = 0
    processing_errors: list[str] = field(default_factory=list)
    id: str | None = None

    def __post_init__(self) -> None:
        if self.status not in UPLOAD_STATUSES:
            raise ValueError(f"status must be one of {', '.join(UPLOAD_STATUSES)}")
        self.file_size = _to_non_negative_int(self.file_size, "file_size")
        self.sheets_processed = _to_non_negative_int(self.sheets_processed, "sheets_processed")
        self.rows_extracted = _to_non_negative_int(self.rows_extracted, "rows_extracted")
        self.rows_normalized = _to_non_negative_int(self.rows_normalized, "rows_normalized")
        self.processing_errors = _to_string_list(self.processing_errors, "processing_errors")

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "original_name": self.original_name,
            "file_size": self.file_size,
            "uploaded_at": self.uploaded_at,
            "uploaded_by": self.uploaded_by,
            "sha256": self.sha256,
            "status": self.status,
            "sheets_processed": self.sheets_processed,
            "rows_extracted": self.rows_extracted,
            "rows_normalized": self.rows_normalized,
            "processing_errors": list(self.processing_errors),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UploadRecord:
        return cls(
            filename=data["filename"],
            original_name=data["original_name"],
            file_size=data.get("file_size", 0),
            uploaded_at=data.get("uploaded_at", ""),
            uploaded_by=data.get("uploaded_by", "system"),
            sha256=data.get("sha256", ""),
            status=data.get("status", "processing"),
            sheets_processed=data.get("sheets_processed", 0),
            rows_extracted=data.get("rows_extracted", 0),
            rows_normalized=data.get("rows_normalized", 0),
            processing_errors=data.get("processing_errors"),
            id=data.get("id"),
        )


@dataclass
class RawExtraction:
    """Unmodified copy of one row's cells, kept for audit."""

    upload_id: str
    sheet_name: str
    row_number: int
    raw_data: dict[str, Any]
    extracted_at: str = ""
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "upload_id": self.upload_id,
            "sheet_name": self.sheet_name,
            "row_number": self.row_number,
            "raw_data": dict(self.raw_data),
            "extracted_at": self.extracted_at,
        }


@dataclass
class NormalizedTransaction:
    """Analytics-ready record derived from one parsed row."""

    upload_id: str
    raw_data_id: str
    date: date
    distributor: str
    amount: float = 0.0
    description: str | None = None
    is_valid: bool = True
    validation_errors: list[str] = field(default_factory=list)
    is_duplicate: bool = False
    id: str | None = None

    def __post_init__(self) -> None:
        self.date = _parse_iso_date(self.date)
        self.validation_errors = _to_string_list(self.validation_errors, "validation_errors")

    @property
    def month(self) -> int:
        return self.date.month

    @property
    def year(self) -> int:
        return self.date.year

    @property
    def quarter(self) -> int:
        return fiscal_quarter(self.date.month)

    def to_dict(self) -> dict[str, Any]:
        return {
            "upload_id": self.upload_id,
            "raw_data_id": self.raw_data_id,
            "date": self.date.isoformat(),
            "month": self.month,
            "year": self.year,
            "quarter": self.quarter,
            "distributor": self.distributor,
            "amount": self.amount,
            "description": self.description,
            "is_valid": self.is_valid,
            "validation_errors": list(self.validation_errors),
            "is_duplicate": self.is_duplicate,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NormalizedTransaction:
        return cls(
            upload_id=data["upload_id"],
            raw_data_id=data["raw_data_id"],
            date=data["date"],
            distributor=data["distributor"],
            amount=float(data.get("amount", 0.0)),
            description=data.get("description"),
            is_valid=bool(data.get("is_valid", True)),
            validation_errors=data.get("validation_errors"),
            is_duplicate=bool(data.get("is_duplicate", False)),
            id=data.get("id"),
        )
