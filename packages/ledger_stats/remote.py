"""Thin client for the remote statistics service.

Non-streaming JSON GET/DELETE requests over ``urllib`` against the service's
``/files``, ``/transactions`` and ``/stats/*`` endpoints. Response bodies are
validated with pydantic models mirroring the service's camelCase JSON and
converted to the package's own value types, so callers never see the wire
shapes.

Every failure (HTTP error status, unreachable host, timeout, undecodable or
unexpected body) is raised as :class:`~ledger_stats.errors.RemoteServiceError`.
There are no retries; the caller decides whether to re-request.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from .errors import RemoteServiceError
from .logging_setup import get_logger
from .models import GroupTotal, LedgerFileInfo, PaymentSummary, Transaction, TransactionFilter
from .status import classify_cash

_logger = get_logger("ledger_stats.remote")

DEFAULT_TIMEOUT = 10.0
PAGE_SIZE = 500


def _decimal(value: float | int) -> Decimal:
    # Through str so 1092.5 stays 1092.5 rather than its binary expansion.
    return Decimal(str(value))


# ---------------------------------------------------------------------------
# Wire models
# ---------------------------------------------------------------------------


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ApiFile(_Wire):
    id: str
    name: str
    uploaded_at: int
    transaction_count: int | None = None

    def to_domain(self) -> LedgerFileInfo:
        return LedgerFileInfo(
            id=self.id,
            name=self.name,
            uploaded_at=datetime.fromtimestamp(self.uploaded_at, tz=UTC),
            transaction_count=self.transaction_count,
        )


class ApiTransaction(_Wire):
    id: str
    file_id: str
    category: str = ""
    source: str = ""
    description: str = ""
    amount: float
    amount_original: str = ""
    is_paid: bool = False
    is_cash: str = ""
    transaction_date: str | None = None

    def to_domain(self) -> Transaction:
        return Transaction(
            id=self.id,
            file_id=self.file_id,
            category=self.category,
            source=self.source,
            description=self.description,
            amount=_decimal(self.amount),
            amount_original=self.amount_original,
            is_paid=self.is_paid,
            is_cash=classify_cash(self.is_cash),
            cash_marker=self.is_cash,
            transaction_date=self.transaction_date,
        )


class ApiPagination(_Wire):
    page: int = 0
    per_page: int = 0
    total_items: int = 0
    total_pages: int = 0


class ApiTransactionPage(_Wire):
    data: list[ApiTransaction] = []
    pagination: ApiPagination = ApiPagination()


class ApiSummary(_Wire):
    total_spent: float = 0
    paid_amount: float = 0
    unpaid_amount: float = 0
    paid_count: int = 0
    unpaid_count: int = 0
    # Older service builds do not report the cash subset.
    cash_amount: float | None = None
    cash_count: int | None = None

    @property
    def has_cash(self) -> bool:
        return self.cash_amount is not None and self.cash_count is not None

    def to_domain(self) -> PaymentSummary:
        return PaymentSummary(
            total_spent=_decimal(self.total_spent),
            paid_amount=_decimal(self.paid_amount),
            unpaid_amount=_decimal(self.unpaid_amount),
            paid_count=self.paid_count,
            unpaid_count=self.unpaid_count,
            cash_amount=_decimal(self.cash_amount or 0),
            cash_count=self.cash_count or 0,
        )


class ApiCategoryTotal(_Wire):
    category: str
    total: float
    count: int
    percentage: float

    def to_domain(self) -> GroupTotal:
        return GroupTotal(
            key=self.category,
            total=_decimal(self.total),
            count=self.count,
            percentage=self.percentage,
        )


class ApiSourceTotal(_Wire):
    source: str
    total: float
    count: int
    percentage: float

    def to_domain(self) -> GroupTotal:
        return GroupTotal(
            key=self.source,
            total=_decimal(self.total),
            count=self.count,
            percentage=self.percentage,
        )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


def filter_params(flt: TransactionFilter | None) -> dict[str, str]:
    """Query parameters for ``flt``; unset criteria are omitted."""

    if flt is None:
        return {}
    params: dict[str, str] = {}
    if flt.file_ids:
        params["file_ids"] = ",".join(sorted(flt.file_ids))
    if flt.exclude_categories:
        params["exclude_categories"] = ",".join(sorted(flt.exclude_categories))
    if flt.exclude_sources:
        params["exclude_sources"] = ",".join(sorted(flt.exclude_sources))
    if flt.is_paid is not None:
        params["is_paid"] = "true" if flt.is_paid else "false"
    if flt.date_from:
        params["date_from"] = flt.date_from
    if flt.date_to:
        params["date_to"] = flt.date_to
    return params


def _error_message(e: urllib.error.HTTPError) -> str:
    try:
        body = e.read().decode("utf-8", errors="replace")
    except OSError:
        body = ""
    try:
        payload = json.loads(body) if body else None
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return body.strip() or f"HTTP {e.code}"


class StatsServiceClient:
    """Typed access to the remote statistics service rooted at ``base_url``."""

    def __init__(self, base_url: str, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _url(self, path: str, params: dict[str, str] | None = None) -> str:
        url = f"{self.base_url}{path}"
        if params:
            url = f"{url}?{urllib.parse.urlencode(params, safe=',')}"
        return url

    def _request(
        self, path: str, *, params: dict[str, str] | None = None, method: str = "GET"
    ) -> Any:
        url = self._url(path, params)
        req = urllib.request.Request(url, method=method)
        req.add_header("Accept", "application/json")
        _logger.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read()
        except urllib.error.HTTPError as e:
            message = _error_message(e)
            _logger.warning("%s %s failed: %s %s", method, url, e.code, message)
            raise RemoteServiceError(message, status=e.code) from e
        except (urllib.error.URLError, TimeoutError, ConnectionError) as e:
            reason = getattr(e, "reason", e)
            _logger.warning("%s %s failed: %s", method, url, reason)
            raise RemoteServiceError(f"statistics service unreachable: {reason}") from e

        if not body:
            return None
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise RemoteServiceError(f"invalid JSON from {path}: {e}") from e

    @staticmethod
    def _parse[M: BaseModel](model: type[M], payload: Any, *, path: str) -> M:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise RemoteServiceError(f"unexpected response from {path}: {e}") from e

    def _parse_list[M: BaseModel](self, model: type[M], payload: Any, *, path: str) -> list[M]:
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise RemoteServiceError(f"unexpected response from {path}: expected a JSON array")
        return [self._parse(model, item, path=path) for item in payload]

    # ---- Files ---------------------------------------------------------------

    def list_files(self) -> list[LedgerFileInfo]:
        payload = self._request("/files")
        return [f.to_domain() for f in self._parse_list(ApiFile, payload, path="/files")]

    def get_file(self, file_id: str) -> LedgerFileInfo | None:
        path = f"/files/{urllib.parse.quote(file_id, safe='')}"
        try:
            payload = self._request(path)
        except RemoteServiceError as e:
            if e.status == 404:
                return None
            raise
        return self._parse(ApiFile, payload, path=path).to_domain()

    def delete_file(self, file_id: str) -> bool:
        path = f"/files/{urllib.parse.quote(file_id, safe='')}"
        try:
            self._request(path, method="DELETE")
        except RemoteServiceError as e:
            if e.status == 404:
                return False
            raise
        return True

    # ---- Transactions and statistics -----------------------------------------

    def list_transactions(self, flt: TransactionFilter | None = None) -> list[Transaction]:
        """All matching transactions, following the service's pagination."""

        params = filter_params(flt)
        out: list[Transaction] = []
        page = 1
        while True:
            payload = self._request(
                "/transactions",
                params={**params, "page": str(page), "per_page": str(PAGE_SIZE)},
            )
            batch = self._parse(ApiTransactionPage, payload, path="/transactions")
            out.extend(t.to_domain() for t in batch.data)
            if not batch.data or page >= batch.pagination.total_pages:
                return out
            page += 1

    def summary_payload(self, flt: TransactionFilter | None = None) -> ApiSummary:
        payload = self._request("/stats/summary", params=filter_params(flt))
        return self._parse(ApiSummary, payload, path="/stats/summary")

    def summary(self, flt: TransactionFilter | None = None) -> PaymentSummary:
        return self.summary_payload(flt).to_domain()

    def category_totals(self, flt: TransactionFilter | None = None) -> list[GroupTotal]:
        path = "/stats/categories"
        payload = self._request(path, params=filter_params(flt))
        return [c.to_domain() for c in self._parse_list(ApiCategoryTotal, payload, path=path)]

    def source_totals(self, flt: TransactionFilter | None = None) -> list[GroupTotal]:
        path = "/stats/sources"
        payload = self._request(path, params=filter_params(flt))
        return [s.to_domain() for s in self._parse_list(ApiSourceTotal, payload, path=path)]

    def top_category(self, flt: TransactionFilter | None = None) -> GroupTotal | None:
        path = "/stats/top-category"
        payload = self._request(path, params=filter_params(flt))
        if payload is None:
            return None
        return self._parse(ApiCategoryTotal, payload, path=path).to_domain()


__all__ = [
    "ApiCategoryTotal",
    "ApiFile",
    "ApiSourceTotal",
    "ApiSummary",
    "ApiTransaction",
    "StatsServiceClient",
    "filter_params",
]
