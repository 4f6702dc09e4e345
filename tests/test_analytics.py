from __future__ import annotations

from datetime import date
from typing import Any

import pandas as pd
import pytest

from revenue_desk.analytics import (
    compute_daily,
    compute_distributors,
    compute_monthly,
    compute_quarterly,
    compute_summary,
    filter_transactions,
    list_transactions,
    load_transactions,
    run_query,
    transactions_frame,
)
from revenue_desk.models import NormalizedTransaction
from revenue_desk.store import TRANSACTIONS, MemoryStore


def _txn(day: str, distributor: str, amount: float, **extra: Any) -> dict[str, Any]:
    doc = NormalizedTransaction(
        upload_id="u1",
        raw_data_id=f"r-{day}-{distributor}",
        date=day,
        distributor=distributor,
        amount=amount,
        **extra,
    ).to_dict()
    doc["id"] = doc["raw_data_id"].replace("r-", "t-")
    return doc


@pytest.fixture
def frame() -> pd.DataFrame:
    return transactions_frame(
        [
            _txn("2024-01-10", "Krishna Books", 100.0, description="Hindi readers"),
            _txn("2024-02-05", "Gita Press", 250.0),
            _txn("2024-02-20", "Krishna Books", 50.0),
            _txn("2024-04-02", "Gita Press", 400.0, description="Gita pocket edition"),
            _txn(
                "2024-04-03",
                "Sharma Traders",
                0.0,
                is_valid=False,
                validation_errors=["Invalid or missing amount"],
            ),
        ]
    )


def test_transactions_frame_types(frame: pd.DataFrame) -> None:
    assert pd.api.types.is_datetime64_any_dtype(frame["date"])
    assert frame["amount"].dtype == float
    assert frame["is_valid"].tolist() == [True, True, True, True, False]


def test_empty_frame_has_expected_columns() -> None:
    df = transactions_frame([])

    assert df.empty
    assert "distributor" in df.columns
    assert compute_summary(df, date(2024, 4, 15))["total_revenue"] == 0.0
    assert compute_monthly(df).empty


def test_load_transactions_reads_store() -> None:
    store = MemoryStore()
    store.insert(TRANSACTIONS, _txn("2024-01-10", "A", 5.0))

    df = load_transactions(store)

    assert len(df) == 1
    assert df.loc[0, "amount"] == 5.0


def test_filter_transactions(frame: pd.DataFrame) -> None:
    assert len(filter_transactions(frame)) == 4
    assert len(filter_transactions(frame, valid_only=False)) == 5
    assert len(filter_transactions(frame, distributor="Gita Press")) == 2
    assert len(filter_transactions(frame, distributor="all")) == 4
    window = filter_transactions(frame, start=date(2024, 2, 1), end=date(2024, 2, 28))
    assert window["amount"].tolist() == [250.0, 50.0]


def test_compute_summary_uses_calendar_month_and_quarter(frame: pd.DataFrame) -> None:
    valid = filter_transactions(frame)

    summary = compute_summary(valid, date(2024, 4, 15))

    assert summary == {
        "total_revenue": 800.0,
        "monthly_revenue": 400.0,
        "quarterly_revenue": 400.0,
        "distributor_count": 2,
    }


def test_compute_monthly(frame: pd.DataFrame) -> None:
    monthly = compute_monthly(filter_transactions(frame))

    assert monthly[["year", "month"]].values.tolist() == [[2024, 1], [2024, 2], [2024, 4]]
    assert monthly["revenue"].tolist() == [100.0, 300.0, 400.0]
    assert monthly["transaction_count"].tolist() == [1, 2, 1]


def test_compute_quarterly_uses_fiscal_quarters(frame: pd.DataFrame) -> None:
    quarterly = compute_quarterly(filter_transactions(frame))

    assert quarterly["quarter"].tolist() == [1, 4]
    assert quarterly["revenue"].tolist() == [400.0, 400.0]


def test_compute_distributors_ranks_by_revenue(frame: pd.DataFrame) -> None:
    ranked = compute_distributors(filter_transactions(frame))

    assert ranked["distributor"].tolist() == ["Gita Press", "Krishna Books"]
    assert ranked["revenue"].tolist() == [650.0, 150.0]
    assert len(compute_distributors(filter_transactions(frame), n=1)) == 1


def test_compute_daily_newest_first(frame: pd.DataFrame) -> None:
    daily = compute_daily(filter_transactions(frame), n=2)

    assert daily["date"].tolist() == ["2024-04-02", "2024-02-20"]


def test_run_query_dispatch(frame: pd.DataFrame) -> None:
    summary = run_query(frame, "summary", now=date(2024, 2, 25))
    assert isinstance(summary, dict)
    assert summary["monthly_revenue"] == 700.0

    monthly = run_query(frame, "monthly", distributor="Krishna Books")
    assert isinstance(monthly, pd.DataFrame)
    assert monthly["revenue"].tolist() == [100.0, 50.0]

    with pytest.raises(ValueError, match="Invalid analytics type"):
        run_query(frame, "weekly")


def test_list_transactions_search_and_pagination(frame: pd.DataFrame) -> None:
    page = list_transactions(frame, search="gita", limit=1)

    assert page["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
    [first] = page["transactions"]
    assert first["date"] == date(2024, 4, 2)
    assert page["distributors"] == ["Gita Press", "Krishna Books", "Sharma Traders"]

    second = list_transactions(frame, search="gita", limit=1, page=2)
    assert second["transactions"][0]["date"] == date(2024, 2, 5)


def test_list_transactions_includes_invalid_rows(frame: pd.DataFrame) -> None:
    page = list_transactions(frame, distributor="Sharma Traders")

    assert page["pagination"]["total"] == 1
    assert not page["transactions"][0]["is_valid"]


def test_list_transactions_rejects_bad_paging(frame: pd.DataFrame) -> None:
    with pytest.raises(ValueError, match="page and limit"):
        list_transactions(frame, page=0)
