"""Exception hierarchy for revenue-desk.

Only failures that abort a whole operation are raised. Row-level problems
(unparseable cells, missing mandatory fields) are reported as data on the
parsed rows instead.
"""

from __future__ import annotations


class RevenueDeskError(Exception):
    """Base class for every error raised deliberately by revenue-desk."""


class WorkbookDecodeError(RevenueDeskError, ValueError):
    """The uploaded bytes could not be read as a spreadsheet workbook."""


class UploadRejectedError(RevenueDeskError, ValueError):
    """An upload was refused before parsing (wrong type or too large)."""


class StoreError(RevenueDeskError):
    """A document store operation failed (unknown kind or missing record)."""
