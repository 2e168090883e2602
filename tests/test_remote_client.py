from __future__ import annotations

import urllib.error
import urllib.request
from decimal import Decimal

import pytest

from ledger_stats.errors import RemoteServiceError
from ledger_stats.models import TransactionFilter
from ledger_stats.remote import StatsServiceClient, filter_params
from ledger_stats.stats import RemoteStatsBackend, StatsBackend
from tests.helpers.http_stub import StatsServiceStub

BASE = "http://stats.local/api"

TX_PAYLOAD = {
    "id": "t1",
    "fileId": "f1",
    "category": "Food",
    "source": "Card",
    "description": "Milk",
    "amount": 1092.5,
    "amountOriginal": "1.092,50 zł",
    "isPaid": True,
    "isCash": "tak",
    "transactionDate": "2024-05-03",
    "createdAt": 1714723200,
}


def _install(monkeypatch: pytest.MonkeyPatch, routes) -> StatsServiceStub:
    stub = StatsServiceStub(routes)
    monkeypatch.setattr(urllib.request, "urlopen", stub)
    return stub


def test_filter_params_are_comma_joined_and_omit_unset() -> None:
    flt = TransactionFilter(
        file_ids=frozenset({"b", "a"}),
        exclude_categories=frozenset({"Rent"}),
        is_paid=False,
        date_to="2024-12-31",
    )
    assert filter_params(flt) == {
        "file_ids": "a,b",
        "exclude_categories": "Rent",
        "is_paid": "false",
        "date_to": "2024-12-31",
    }
    assert filter_params(None) == {}


def test_list_files_converts_wire_models(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(
        monkeypatch,
        {("GET", "/api/files"): (200, [{"id": "f1", "name": "may.csv", "uploadedAt": 0, "createdAt": 0}])},
    )

    [f] = StatsServiceClient(BASE).list_files()

    assert (f.id, f.name, f.uploaded_at.year) == ("f1", "may.csv", 1970)


def test_list_transactions_sends_filter_and_follows_pages(monkeypatch: pytest.MonkeyPatch) -> None:
    page = {"page": 1, "perPage": 500, "totalItems": 2, "totalPages": 2}
    stub = _install(
        monkeypatch,
        {
            ("GET", "/api/transactions?exclude_sources=Cash&page=1&per_page=500"): (
                200,
                {"data": [TX_PAYLOAD], "pagination": page},
            ),
            ("GET", "/api/transactions?exclude_sources=Cash&page=2&per_page=500"): (
                200,
                {"data": [{**TX_PAYLOAD, "id": "t2", "isCash": ""}], "pagination": {**page, "page": 2}},
            ),
        },
    )

    txs = StatsServiceClient(BASE).list_transactions(
        TransactionFilter(exclude_sources=frozenset({"Cash"}))
    )

    assert [t.id for t in txs] == ["t1", "t2"]
    first = txs[0]
    assert first.amount == Decimal("1092.5")
    assert first.is_cash is True and first.cash_marker == "tak"
    assert txs[1].is_cash is False
    assert len(stub.calls) == 2


def test_stats_endpoints(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(
        monkeypatch,
        {
            ("GET", "/api/stats/summary"): (
                200,
                {"totalSpent": 400, "paidAmount": 300, "unpaidAmount": 100, "paidCount": 3, "unpaidCount": 1},
            ),
            ("GET", "/api/stats/categories"): (
                200,
                [{"category": "A", "total": 300, "count": 1, "percentage": 75}],
            ),
            ("GET", "/api/stats/sources"): (
                200,
                [{"source": "Card", "total": 400, "count": 4, "percentage": 100}],
            ),
            ("GET", "/api/stats/top-category"): (200, None),
        },
    )
    client = StatsServiceClient(BASE)

    summary = client.summary()
    assert summary.total_spent == Decimal("400")
    assert (summary.paid_count, summary.unpaid_count) == (3, 1)
    assert summary.cash_amount == 0

    [cat] = client.category_totals()
    assert (cat.key, cat.total, cat.percentage) == ("A", Decimal("300"), 75.0)
    [src] = client.source_totals()
    assert src.key == "Card"
    assert client.top_category() is None


def test_http_error_carries_status_and_service_message(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, {("GET", "/api/stats/summary"): (500, {"error": "database is locked"})})

    with pytest.raises(RemoteServiceError) as excinfo:
        StatsServiceClient(BASE).summary()

    assert excinfo.value.status == 500
    assert excinfo.value.message == "database is locked"


def test_missing_file_is_none_and_delete_reports_absence(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(
        monkeypatch,
        {
            ("GET", "/api/files/nope"): (404, {"error": "File not found"}),
            ("DELETE", "/api/files/nope"): (404, {"error": "File not found"}),
            ("DELETE", "/api/files/f1"): (200, {"message": "File deleted"}),
        },
    )
    client = StatsServiceClient(BASE)

    assert client.get_file("nope") is None
    assert client.delete_file("nope") is False
    assert client.delete_file("f1") is True


def test_transport_failure_has_no_status(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def refuse(req, timeout=None):
        calls.append(req.full_url)
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(urllib.request, "urlopen", refuse)

    with pytest.raises(RemoteServiceError) as excinfo:
        StatsServiceClient(BASE).list_files()

    assert excinfo.value.status is None
    assert "connection refused" in str(excinfo.value)
    # No automatic retry
    assert len(calls) == 1


def test_invalid_body_is_a_remote_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(
        monkeypatch,
        {
            ("GET", "/api/files"): (200, b"<html>oops</html>"),
            ("GET", "/api/stats/categories"): (200, {"not": "a list"}),
        },
    )
    client = StatsServiceClient(BASE)

    with pytest.raises(RemoteServiceError, match="invalid JSON"):
        client.list_files()
    with pytest.raises(RemoteServiceError, match="expected a JSON array"):
        client.category_totals()


def test_remote_backend_fills_missing_cash_totals(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(
        monkeypatch,
        {
            ("GET", "/api/stats/summary"): (
                200,
                {"totalSpent": 1100, "paidAmount": 1092.5, "unpaidAmount": 7.5, "paidCount": 1, "unpaidCount": 1},
            ),
            ("GET", "/api/transactions"): (
                200,
                {
                    "data": [TX_PAYLOAD, {**TX_PAYLOAD, "id": "t2", "amount": 7.5, "isCash": "nie"}],
                    "pagination": {"page": 1, "perPage": 500, "totalItems": 2, "totalPages": 1},
                },
            ),
        },
    )
    backend = RemoteStatsBackend.from_url(BASE)
    assert isinstance(backend, StatsBackend)

    summary = backend.summary()

    assert summary.total_spent == Decimal("1100")
    assert summary.cash_amount == Decimal("1092.5")
    assert summary.cash_count == 1


def test_remote_backend_uses_reported_cash_totals(monkeypatch: pytest.MonkeyPatch) -> None:
    stub = _install(
        monkeypatch,
        {
            ("GET", "/api/stats/summary"): (
                200,
                {"totalSpent": 10, "paidAmount": 10, "unpaidAmount": 0, "paidCount": 1,
                 "unpaidCount": 0, "cashAmount": 10, "cashCount": 1},
            ),
        },
    )

    summary = RemoteStatsBackend.from_url(BASE).summary()

    assert (summary.cash_amount, summary.cash_count) == (Decimal("10"), 1)
    assert len(stub.calls) == 1
