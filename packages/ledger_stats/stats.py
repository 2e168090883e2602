"""Statistics backends.

``StatsBackend`` is the one contract dashboards and the CLI talk to. Two
implementations return identical value types:

- ``LocalStatsBackend`` runs the filters and aggregation engine in-process,
  over either an in-memory transaction sequence or the SQL repository;
- ``RemoteStatsBackend`` delegates to the remote statistics service.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol, runtime_checkable

from . import aggregations, filters, persistence
from .aggregations import UNKNOWN_SOURCE
from .logging_setup import get_logger
from .models import GroupTotal, LedgerFileInfo, PaymentSummary, Transaction, TransactionFilter
from .remote import StatsServiceClient

_logger = get_logger("ledger_stats.stats")


@runtime_checkable
class StatsBackend(Protocol):
    def list_files(self) -> list[LedgerFileInfo]: ...

    def get_file(self, file_id: str) -> LedgerFileInfo | None: ...

    def delete_file(self, file_id: str) -> bool: ...

    def list_transactions(self, flt: TransactionFilter | None = None) -> list[Transaction]: ...

    def summary(self, flt: TransactionFilter | None = None) -> PaymentSummary: ...

    def category_totals(self, flt: TransactionFilter | None = None) -> list[GroupTotal]: ...

    def source_totals(self, flt: TransactionFilter | None = None) -> list[GroupTotal]: ...

    def top_category(self, flt: TransactionFilter | None = None) -> GroupTotal | None: ...


class LocalStatsBackend:
    """Aggregate locally over a repository or an in-memory transaction list.

    With ``database_url`` set (or ``DATABASE_URL`` in the environment and
    ``transactions`` omitted) data comes from the SQL repository; otherwise
    from ``transactions`` and ``files`` held in memory.
    """

    def __init__(
        self,
        transactions: Iterable[Transaction] | None = None,
        *,
        files: Sequence[LedgerFileInfo] = (),
        database_url: str | None = None,
        unknown_source_label: str = UNKNOWN_SOURCE,
    ) -> None:
        self._memory = list(transactions) if transactions is not None else None
        self._files = list(files)
        self.database_url = database_url
        self.unknown_source_label = unknown_source_label

    @property
    def uses_database(self) -> bool:
        return self._memory is None

    # ---- Files ---------------------------------------------------------------

    def list_files(self) -> list[LedgerFileInfo]:
        if self.uses_database:
            from db.client import session_scope

            with session_scope(database_url=self.database_url) as session:
                return persistence.list_files(session)
        return sorted(self._files, key=lambda f: f.uploaded_at, reverse=True)

    def get_file(self, file_id: str) -> LedgerFileInfo | None:
        if self.uses_database:
            from db.client import session_scope

            with session_scope(database_url=self.database_url) as session:
                return persistence.get_file(session, file_id)
        return next((f for f in self._files if f.id == file_id), None)

    def delete_file(self, file_id: str) -> bool:
        if self.uses_database:
            from db.client import session_scope

            with session_scope(database_url=self.database_url) as session:
                return persistence.delete_file(session, file_id)
        assert self._memory is not None
        known = any(f.id == file_id for f in self._files) or any(
            t.file_id == file_id for t in self._memory
        )
        if known:
            self._files = [f for f in self._files if f.id != file_id]
            self._memory = [t for t in self._memory if t.file_id != file_id]
        return known

    # ---- Transactions and statistics -----------------------------------------

    def list_transactions(self, flt: TransactionFilter | None = None) -> list[Transaction]:
        if self.uses_database:
            from db.client import session_scope

            with session_scope(database_url=self.database_url) as session:
                return persistence.list_transactions(session, flt)
        assert self._memory is not None
        return filters.apply_filter(self._memory, flt or TransactionFilter())

    def summary(self, flt: TransactionFilter | None = None) -> PaymentSummary:
        return aggregations.payment_summary(self.list_transactions(flt))

    def category_totals(self, flt: TransactionFilter | None = None) -> list[GroupTotal]:
        return aggregations.group_by_category(self.list_transactions(flt))

    def source_totals(self, flt: TransactionFilter | None = None) -> list[GroupTotal]:
        return aggregations.group_by_source(
            self.list_transactions(flt), unknown_label=self.unknown_source_label
        )

    def top_category(self, flt: TransactionFilter | None = None) -> GroupTotal | None:
        return aggregations.top_category(self.list_transactions(flt))


class RemoteStatsBackend:
    """Delegate every call to a :class:`StatsServiceClient`."""

    def __init__(self, client: StatsServiceClient) -> None:
        self.client = client

    @classmethod
    def from_url(cls, base_url: str, *, timeout: float = 10.0) -> RemoteStatsBackend:
        return cls(StatsServiceClient(base_url, timeout=timeout))

    def list_files(self) -> list[LedgerFileInfo]:
        return self.client.list_files()

    def get_file(self, file_id: str) -> LedgerFileInfo | None:
        return self.client.get_file(file_id)

    def delete_file(self, file_id: str) -> bool:
        return self.client.delete_file(file_id)

    def list_transactions(self, flt: TransactionFilter | None = None) -> list[Transaction]:
        return self.client.list_transactions(flt)

    def summary(self, flt: TransactionFilter | None = None) -> PaymentSummary:
        payload = self.client.summary_payload(flt)
        result = payload.to_domain()
        if payload.has_cash:
            return result
        # Service did not report the cash subset; derive it from the rows.
        _logger.debug("summary without cash totals; computing cash subset locally")
        cash = aggregations.payment_summary(
            t for t in self.client.list_transactions(flt) if t.is_cash
        )
        return PaymentSummary(
            total_spent=result.total_spent,
            paid_amount=result.paid_amount,
            unpaid_amount=result.unpaid_amount,
            paid_count=result.paid_count,
            unpaid_count=result.unpaid_count,
            cash_amount=cash.total_spent,
            cash_count=cash.count,
        )

    def category_totals(self, flt: TransactionFilter | None = None) -> list[GroupTotal]:
        return self.client.category_totals(flt)

    def source_totals(self, flt: TransactionFilter | None = None) -> list[GroupTotal]:
        return self.client.source_totals(flt)

    def top_category(self, flt: TransactionFilter | None = None) -> GroupTotal | None:
        return self.client.top_category(flt)


__all__ = ["LocalStatsBackend", "RemoteStatsBackend", "StatsBackend"]
