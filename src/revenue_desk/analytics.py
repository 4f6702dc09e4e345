"""Revenue aggregations over normalized transactions."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

import pandas as pd

from revenue_desk.store import TRANSACTIONS, DocumentStore

TRANSACTION_COLUMNS: list[str] = [
    "id",
    "upload_id",
    "raw_data_id",
    "date",
    "month",
    "year",
    "quarter",
    "distributor",
    "amount",
    "description",
    "is_valid",
    "validation_errors",
]
ANALYTICS_TYPES: tuple[str, ...] = ("summary", "monthly", "quarterly", "distributors", "daily")


# ── Loading / filtering ─────────────────────────────────────────


def transactions_frame(docs: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Build a typed DataFrame from stored transaction documents."""
    df = pd.DataFrame(list(docs), columns=TRANSACTION_COLUMNS)
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce").fillna(0.0).astype(float)
    df["is_valid"] = df["is_valid"].fillna(False).astype(bool)
    return df


def load_transactions(store: DocumentStore) -> pd.DataFrame:
    return transactions_frame(store.find(TRANSACTIONS))


def filter_transactions(
    df: pd.DataFrame,
    *,
    start: date | None = None,
    end: date | None = None,
    distributor: str | None = None,
    valid_only: bool = True,
) -> pd.DataFrame:
    """Apply the dashboard filters. ``distributor="all"`` means no filter."""
    mask = pd.Series(True, index=df.index)
    if valid_only:
        mask &= df["is_valid"]
    if start is not None:
        mask &= df["date"] >= pd.Timestamp(start)
    if end is not None:
        mask &= df["date"] <= pd.Timestamp(end)
    if distributor and distributor != "all":
        mask &= df["distributor"] == distributor
    return df[mask]


# ── Aggregations ────────────────────────────────────────────────


def _revenue_since(df: pd.DataFrame, since: date) -> float:
    return float(df.loc[df["date"] >= pd.Timestamp(since), "amount"].sum())


def compute_summary(df: pd.DataFrame, now: date) -> dict[str, Any]:
    """Totals for the dashboard cards.

    The month and quarter figures cover everything dated on or after the first
    day of *now*'s calendar month / calendar quarter.
    """
    if df.empty:
        return {
            "total_revenue": 0.0,
            "monthly_revenue": 0.0,
            "quarterly_revenue": 0.0,
            "distributor_count": 0,
        }
    month_start = date(now.year, now.month, 1)
    quarter_start = date(now.year, ((now.month - 1) // 3) * 3 + 1, 1)
    return {
        "total_revenue": float(df["amount"].sum()),
        "monthly_revenue": _revenue_since(df, month_start),
        "quarterly_revenue": _revenue_since(df, quarter_start),
        "distributor_count": int(df["distributor"].nunique()),
    }


def _grouped(df: pd.DataFrame, keys: list[str]) -> pd.DataFrame:
    return df.groupby(keys, as_index=False).agg(
        revenue=("amount", "sum"), transaction_count=("amount", "size")
    )


def compute_monthly(df: pd.DataFrame, limit: int = 24) -> pd.DataFrame:
    """Revenue per (year, month), oldest first."""
    if df.empty:
        return pd.DataFrame(columns=["year", "month", "revenue", "transaction_count"])
    return (
        _grouped(df, ["year", "month"])
        .sort_values(["year", "month"])
        .head(limit)
        .reset_index(drop=True)
    )


def compute_quarterly(df: pd.DataFrame) -> pd.DataFrame:
    """Revenue per (year, fiscal quarter), oldest first."""
    if df.empty:
        return pd.DataFrame(columns=["year", "quarter", "revenue", "transaction_count"])
    return _grouped(df, ["year", "quarter"]).sort_values(["year", "quarter"]).reset_index(drop=True)


def compute_distributors(df: pd.DataFrame, n: int = 20) -> pd.DataFrame:
    """Top *n* distributors by revenue."""
    if df.empty:
        return pd.DataFrame(columns=["distributor", "revenue", "transaction_count"])
    return (
        _grouped(df, ["distributor"])
        .sort_values(["revenue", "distributor"], ascending=[False, True])
        .head(n)
        .reset_index(drop=True)
    )


def compute_daily(df: pd.DataFrame, n: int = 30) -> pd.DataFrame:
    """Revenue for the *n* most recent days, newest first."""
    if df.empty:
        return pd.DataFrame(columns=["date", "revenue", "transaction_count"])
    days = df.assign(date=df["date"].dt.strftime("%Y-%m-%d"))
    return (
        _grouped(days, ["date"])
        .sort_values("date", ascending=False)
        .head(n)
        .reset_index(drop=True)
    )


def run_query(
    df: pd.DataFrame,
    kind: str,
    *,
    now: date | None = None,
    start: date | None = None,
    end: date | None = None,
    distributor: str | None = None,
) -> dict[str, Any] | pd.DataFrame:
    """Dispatch one analytics request over valid transactions.

    Raises
    ------
    ValueError
        If *kind* is not one of ``ANALYTICS_TYPES``.
    """
    if kind not in ANALYTICS_TYPES:
        raise ValueError(f"Invalid analytics type: {kind!r}. Use {', '.join(ANALYTICS_TYPES)}")
    filtered = filter_transactions(df, start=start, end=end, distributor=distributor)
    if kind == "summary":
        return compute_summary(filtered, now or date.today())
    if kind == "monthly":
        return compute_monthly(filtered)
    if kind == "quarterly":
        return compute_quarterly(filtered)
    if kind == "distributors":
        return compute_distributors(filtered)
    return compute_daily(filtered)


# ── Transaction listing ─────────────────────────────────────────


def list_transactions(
    df: pd.DataFrame,
    *,
    search: str | None = None,
    distributor: str | None = None,
    start: date | None = None,
    end: date | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict[str, Any]:
    """Newest-first page of transactions (valid and invalid)."""
    if page < 1 or limit < 1:
        raise ValueError("page and limit must be >= 1")
    filtered = filter_transactions(
        df, start=start, end=end, distributor=distributor, valid_only=False
    )
    if search:
        needle = search.lower()
        hit = filtered["distributor"].fillna("").str.lower().str.contains(needle, regex=False)
        hit |= filtered["description"].fillna("").str.lower().str.contains(needle, regex=False)
        filtered = filtered[hit]

    total = len(filtered)
    ordered = filtered.sort_values("date", ascending=False, kind="stable")
    offset = (page - 1) * limit
    window = ordered.iloc[offset : offset + limit]
    records = window.assign(date=window["date"].dt.date).to_dict(orient="records")

    return {
        "transactions": records,
        "distributors": sorted(df["distributor"].dropna().unique().tolist()),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }
