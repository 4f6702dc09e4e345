"""Ingestion orchestrator that persists one upload's parse output.

The store handle is passed in by the caller; the orchestrator never opens or
closes it.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from revenue_desk.exceptions import UploadRejectedError
from revenue_desk.models import (
    NormalizedTransaction,
    ParsedRow,
    ParseResult,
    RawExtraction,
    UploadRecord,
)
from revenue_desk.pipeline import parse_excel
from revenue_desk.settings import ALLOWED_SUFFIXES, Settings
from revenue_desk.store import RAW_DATA, TRANSACTIONS, UPLOADS, DocumentStore
from revenue_desk.utils import sha256_bytes, utcnow_iso

logger = logging.getLogger(__name__)


@dataclass
class IngestOutcome:
    """Immediate response for one ingested upload."""

    upload_id: str
    filename: str
    status: str
    sheets_processed: int = 0
    rows_processed: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0
    rows_normalized: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status in ("completed", "partial")

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "upload_id": self.upload_id,
            "filename": self.filename,
            "status": self.status,
            "sheets_processed": self.sheets_processed,
            "rows_processed": self.rows_processed,
            "valid_rows": self.valid_rows,
            "invalid_rows": self.invalid_rows,
            "rows_normalized": self.rows_normalized,
            "errors": list(self.errors),
        }


def truncate_errors(errors: list[str], limit: int) -> list[str]:
    """Keep the first *limit* error strings."""
    return list(errors[:limit])


def _stored_amount(row: ParsedRow) -> float:
    # Invalid rows are still stored; a missing amount counts as zero.
    if row.amount is None or math.isnan(row.amount):
        return 0.0
    return row.amount


class Ingestor:
    """Create upload, raw-extraction and normalized-transaction records."""

    def __init__(
        self,
        store: DocumentStore,
        settings: Settings | None = None,
        *,
        clock: Callable[[], str] = utcnow_iso,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self._clock = clock

    # ── Acceptance ───────────────────────────────────────────────

    def check_upload(self, filename: str, size: int) -> None:
        """Reject files that are not spreadsheets or exceed the size limit."""
        suffix = Path(filename).suffix.lower()
        if suffix not in ALLOWED_SUFFIXES:
            raise UploadRejectedError(
                "Invalid file type. Please upload .xls or .xlsx files."
            )
        if size > self.settings.max_upload_bytes:
            limit_mb = self.settings.max_upload_bytes / (1024 * 1024)
            raise UploadRejectedError(f"File too large. Maximum size is {limit_mb:g} MB.")

    # ── Main entry point ─────────────────────────────────────────

    def ingest(
        self, payload: bytes, filename: str, *, uploaded_by: str = "system"
    ) -> IngestOutcome:
        """Parse *payload* and persist every row.

        Raises
        ------
        UploadRejectedError
            Before any record is written, if the upload is not acceptable.
        WorkbookDecodeError
            If the payload cannot be decoded.

        Any error raised after the upload record exists (a decode failure or
        a store write) marks the upload ``failed`` before propagating.
        """
        self.check_upload(filename, len(payload))

        upload = UploadRecord(
            filename=f"{int(time.time() * 1000)}-{filename}",
            original_name=filename,
            file_size=len(payload),
            uploaded_at=self._clock(),
            uploaded_by=uploaded_by,
            sha256=sha256_bytes(payload),
        )
        upload_id = self.store.insert(UPLOADS, upload.to_dict())
        logger.info("Upload %s: processing %s (%d bytes)", upload_id, filename, len(payload))

        try:
            result = parse_excel(payload, settings=self.settings, filename=filename)
            return self._persist(upload_id, filename, result)
        except Exception as exc:
            logger.error("Upload %s: failed: %s", upload_id, exc)
            self.store.update(
                UPLOADS, upload_id, {"status": "failed", "processing_errors": [str(exc)]}
            )
            self.store.flush()
            raise

    def _persist(self, upload_id: str, filename: str, result: ParseResult) -> IngestOutcome:
        errors = result.row_errors()
        normalized = 0

        for sheet, row in result.iter_rows():
            raw = RawExtraction(
                upload_id=upload_id,
                sheet_name=sheet.sheet_name,
                row_number=row.row_number,
                raw_data=dict(row.raw_data),
                extracted_at=self._clock(),
            )
            raw_id = self.store.insert(RAW_DATA, raw.to_dict())

            if row.date is not None and row.distributor is not None:
                txn = NormalizedTransaction(
                    upload_id=upload_id,
                    raw_data_id=raw_id,
                    date=row.date,
                    distributor=row.distributor,
                    amount=_stored_amount(row),
                    description=row.description,
                    is_valid=row.is_valid,
                    validation_errors=list(row.errors),
                )
                self.store.insert(TRANSACTIONS, txn.to_dict())
                if row.is_valid:
                    normalized += 1

        status = "partial" if errors else "completed"
        self.store.update(
            UPLOADS,
            upload_id,
            {
                "status": status,
                "sheets_processed": len(result.sheets),
                "rows_extracted": result.total_rows,
                "rows_normalized": normalized,
                "processing_errors": truncate_errors(errors, self.settings.stored_error_limit),
            },
        )
        self.store.flush()
        logger.info(
            "Upload %s: %s, %d rows, %d normalized, %d with errors",
            upload_id,
            status,
            result.total_rows,
            normalized,
            len(errors),
        )

        return IngestOutcome(
            upload_id=upload_id,
            filename=filename,
            status=status,
            sheets_processed=len(result.sheets),
            rows_processed=result.total_rows,
            valid_rows=result.valid_rows,
            invalid_rows=result.invalid_rows,
            rows_normalized=normalized,
            errors=truncate_errors(errors, self.settings.response_error_limit),
        )


def list_uploads(store: DocumentStore, limit: int = 20) -> list[UploadRecord]:
    """Most recent uploads first."""
    docs = sorted(
        store.find(UPLOADS),
        key=lambda d: (d.get("uploaded_at", ""), d.get("filename", "")),
        reverse=True,
    )
    return [UploadRecord.from_dict(d) for d in docs[:limit]]
