"""Data models for ``ledger_stats``.

Everything here is an immutable value. Transactions are produced once by the
ingestion pipeline and never mutated; totals and summaries are recomputed from
a transaction sequence on every aggregation call and replaced wholesale.

``to_dict`` methods emit the camelCase field names consumed by the dashboard
layer and by the remote statistics service, with decimals rendered as JSON
numbers.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Core record
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transaction:
    """One ledger line after normalization.

    ``file_id`` is a foreign-key style reference to the owning ingested file;
    selecting or merging by file is a predicate over a flat collection.
    ``amount`` is always a finite decimal: rows whose amount does not
    normalize are dropped at ingestion rather than stored with a sentinel.
    ``amount_original`` keeps the cell exactly as read so display code can
    re-derive the currency marker. ``cash_marker`` likewise keeps the raw cash
    cell next to the ``is_cash`` boolean classified at ingestion.
    """

    id: str
    file_id: str
    category: str
    source: str
    description: str
    amount: Decimal
    amount_original: str
    is_paid: bool = False
    is_cash: bool = False
    cash_marker: str = ""
    transaction_date: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fileId": self.file_id,
            "category": self.category,
            "source": self.source,
            "description": self.description,
            "amount": float(self.amount),
            "amountOriginal": self.amount_original,
            "isPaid": self.is_paid,
            "isCash": self.cash_marker,
            "transactionDate": self.transaction_date,
        }


type Transactions = Iterable[Transaction]
"""Any iterable of transactions; functions never mutate what they receive."""


# ---------------------------------------------------------------------------
# Derived aggregates
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GroupTotal:
    """Total, count and share of one key within a grouping.

    ``percentage`` is relative to the grand total of the input set the
    grouping was computed from, and ``0`` when that grand total is zero.
    """

    key: str
    total: Decimal
    count: int
    percentage: float

    def to_dict(self, key_name: str = "key") -> dict[str, Any]:
        return {
            key_name: self.key,
            "total": float(self.total),
            "count": self.count,
            "percentage": self.percentage,
        }


# Category and source groupings share one shape; the aliases document intent.
type CategoryTotal = GroupTotal
type SourceTotal = GroupTotal


@dataclass(frozen=True, slots=True)
class PaymentSummary:
    """Paid/unpaid partition plus the overlapping cash subset.

    ``paid_amount + unpaid_amount == total_spent`` and
    ``paid_count + unpaid_count`` equals the number of input transactions.
    Cash transactions may be paid or unpaid.
    """

    total_spent: Decimal = ZERO
    paid_amount: Decimal = ZERO
    unpaid_amount: Decimal = ZERO
    paid_count: int = 0
    unpaid_count: int = 0
    cash_amount: Decimal = ZERO
    cash_count: int = 0

    @property
    def count(self) -> int:
        return self.paid_count + self.unpaid_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSpent": float(self.total_spent),
            "paidAmount": float(self.paid_amount),
            "unpaidAmount": float(self.unpaid_amount),
            "paidCount": self.paid_count,
            "unpaidCount": self.unpaid_count,
            "cashAmount": float(self.cash_amount),
            "cashCount": self.cash_count,
        }


# ---------------------------------------------------------------------------
# Files and filters
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LedgerFileInfo:
    """An ingested file as listed by a repository or the remote service."""

    id: str
    name: str
    uploaded_at: datetime
    transaction_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "uploadedAt": int(self.uploaded_at.timestamp()),
            "transactionCount": self.transaction_count,
        }


@dataclass(frozen=True, slots=True)
class TransactionFilter:
    """Selection criteria shared by the local and remote statistics backends.

    Empty ``file_ids`` selects every file. Exclusions combine with AND: a
    transaction is kept only when neither its category nor its source is
    excluded. ``date_from``/``date_to`` are inclusive ISO ``YYYY-MM-DD`` bounds.
    """

    file_ids: frozenset[str] = field(default_factory=frozenset)
    exclude_categories: frozenset[str] = field(default_factory=frozenset)
    exclude_sources: frozenset[str] = field(default_factory=frozenset)
    is_paid: bool | None = None
    date_from: str | None = None
    date_to: str | None = None

    @classmethod
    def from_preferences(cls, prefs: UserPreferences, **overrides: Any) -> TransactionFilter:
        values: dict[str, Any] = {
            "file_ids": frozenset(prefs.selected_file_ids),
            "exclude_categories": frozenset(prefs.excluded_categories),
            "exclude_sources": frozenset(prefs.excluded_sources),
        }
        values.update(overrides)
        return cls(**values)


# ---------------------------------------------------------------------------
# Persisted preferences
# ---------------------------------------------------------------------------


class UserPreferences(BaseModel):
    """Preference values read from a ``PreferenceStore``.

    The core never reads the store itself; callers turn these values into a
    ``TransactionFilter`` (see ``TransactionFilter.from_preferences``).
    Unknown keys in stored payloads are ignored so older or newer payloads
    still load.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    selected_file_ids: tuple[str, ...] = ()
    excluded_categories: tuple[str, ...] = ()
    excluded_sources: tuple[str, ...] = ()

    @field_validator("selected_file_ids", "excluded_categories", "excluded_sources")
    @classmethod
    def _dedupe(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        # Keep first-seen order; drop duplicates.
        return tuple(dict.fromkeys(v))


__all__ = [
    "CategoryTotal",
    "GroupTotal",
    "LedgerFileInfo",
    "PaymentSummary",
    "SourceTotal",
    "Transaction",
    "TransactionFilter",
    "Transactions",
    "UserPreferences",
]
