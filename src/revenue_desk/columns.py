"""Column resolution — map a sheet's header row onto canonical field roles."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from revenue_desk import FIELD_ROLES, MANDATORY_ROLES
from revenue_desk.models import ColumnIndices

NOT_FOUND = -1

# Alias order matters: the first alias that matches any header wins.
DEFAULT_ALIASES: dict[str, list[str]] = {
    "date": [
        "date",
        "Date",
        "DATE",
        "तारीख",
        "Invoice Date",
        "Transaction Date",
        "Bill Date",
    ],
    "amount": [
        "amount",
        "Amount",
        "AMOUNT",
        "Total",
        "Revenue",
        "Value",
        "Sale Amount",
        "Net Amount",
        "रकम",
    ],
    "distributor": [
        "distributor",
        "Distributor",
        "DISTRIBUTOR",
        "Dealer",
        "Name",
        "Party",
        "Customer",
        "वितरक",
    ],
    "description": ["description", "Description", "Details", "Particulars", "Item", "Product"],
}


def _normalize_label(label: object) -> str:
    return str(label).strip().lower()


def find_column(headers: Sequence[str], aliases: Sequence[str]) -> int:
    """Return the index of the first header matched by *aliases*, or ``-1``.

    Aliases are tried in their own order; for each alias the headers are
    scanned left to right and compared case-insensitively after trimming.
    Empty header cells never match.
    """
    normalized = [_normalize_label(h) if h else "" for h in headers]
    for alias in aliases:
        target = _normalize_label(alias)
        for idx, header in enumerate(normalized):
            if header and header == target:
                return idx
    return NOT_FOUND


def resolve_columns(
    headers: Sequence[str], aliases: Mapping[str, Sequence[str]] | None = None
) -> ColumnIndices:
    """Resolve every canonical role independently against *headers*.

    Two roles may resolve to the same column; no cross-role exclusivity is
    applied.
    """
    aliases = DEFAULT_ALIASES if aliases is None else aliases
    found = {role: find_column(headers, aliases.get(role, ())) for role in FIELD_ROLES}
    return ColumnIndices(**found)


def has_any_key_column(
    headers: Sequence[str], aliases: Mapping[str, Sequence[str]] | None = None
) -> bool:
    """True when date, amount or distributor resolves on *headers*."""
    aliases = DEFAULT_ALIASES if aliases is None else aliases
    return any(
        find_column(headers, aliases.get(role, ())) != NOT_FOUND
        for role in MANDATORY_ROLES
    )


def merge_aliases(
    base: Mapping[str, Sequence[str]], extra: Mapping[str, Sequence[str]]
) -> dict[str, list[str]]:
    """Append *extra* aliases after *base* ones, skipping duplicates.

    Raises
    ------
    ValueError
        If *extra* names a role that is not a canonical field role.
    """
    merged = {role: list(base.get(role, ())) for role in FIELD_ROLES}
    for role, names in extra.items():
        if role not in merged:
            raise ValueError(
                f"Unknown column role: {role!r}. Use one of {', '.join(FIELD_ROLES)}"
            )
        seen = {_normalize_label(n) for n in merged[role]}
        for name in names:
            key = _normalize_label(name)
            if key and key not in seen:
                merged[role].append(name)
                seen.add(key)
    return merged
