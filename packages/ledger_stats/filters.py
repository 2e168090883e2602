"""Order-preserving transaction filters.

All functions return a new list and leave their input untouched, so they can
be chained in any order before (or independently of) aggregation.
"""

from __future__ import annotations

from collections.abc import Collection

from .models import Transaction, TransactionFilter, Transactions


def exclude_transactions(
    transactions: Transactions,
    exclude_categories: Collection[str] = (),
    exclude_sources: Collection[str] = (),
) -> list[Transaction]:
    """Drop transactions whose category or source is excluded.

    A transaction survives only when its category is not in
    ``exclude_categories`` *and* its source is not in ``exclude_sources``.
    With both sets empty the result equals the input, and applying the same
    exclusion twice changes nothing further.
    """

    categories = frozenset(exclude_categories)
    sources = frozenset(exclude_sources)
    if not categories and not sources:
        return list(transactions)
    return [
        t for t in transactions if t.category not in categories and t.source not in sources
    ]


def select_files(transactions: Transactions, file_ids: Collection[str]) -> list[Transaction]:
    """Keep transactions owned by ``file_ids``; an empty selection keeps all."""

    wanted = frozenset(file_ids)
    if not wanted:
        return list(transactions)
    return [t for t in transactions if t.file_id in wanted]


def filter_by_category(transactions: Transactions, category: str | None) -> list[Transaction]:
    if category is None:
        return list(transactions)
    return [t for t in transactions if t.category == category]


def _within_dates(t: Transaction, date_from: str | None, date_to: str | None) -> bool:
    if date_from is None and date_to is None:
        return True
    # Undated transactions cannot satisfy a date bound.
    if t.transaction_date is None:
        return False
    if date_from is not None and t.transaction_date < date_from:
        return False
    return date_to is None or t.transaction_date <= date_to


def apply_filter(transactions: Transactions, flt: TransactionFilter) -> list[Transaction]:
    """Apply every criterion of ``flt`` locally, as the remote service would."""

    selected = select_files(transactions, flt.file_ids)
    kept = exclude_transactions(selected, flt.exclude_categories, flt.exclude_sources)
    return [
        t
        for t in kept
        if (flt.is_paid is None or t.is_paid == flt.is_paid)
        and _within_dates(t, flt.date_from, flt.date_to)
    ]


def distinct_categories(transactions: Transactions) -> list[str]:
    """Sorted distinct categories, e.g. for an exclusion pick-list."""

    return sorted({t.category for t in transactions})


def distinct_sources(transactions: Transactions) -> list[str]:
    return sorted({t.source for t in transactions})


__all__ = [
    "apply_filter",
    "distinct_categories",
    "distinct_sources",
    "exclude_transactions",
    "filter_by_category",
    "select_files",
]
