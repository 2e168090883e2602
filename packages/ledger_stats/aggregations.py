"""Aggregation engine: payment summary and grouped totals.

Every function is pure: it reads the transactions it is given once, keeps no
state between calls and returns fresh values. Callers memoize if they need to.
Percentages are taken against the grand total of the input passed in, never a
global total, and are ``0`` when that grand total is zero.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from decimal import Decimal

from .models import ZERO, GroupTotal, PaymentSummary, Transaction, Transactions

UNKNOWN_SOURCE = "Unknown"


def payment_summary(transactions: Transactions) -> PaymentSummary:
    """Total, paid/unpaid partition and cash subset in one pass."""

    total = paid = unpaid = cash = ZERO
    paid_count = unpaid_count = cash_count = 0
    for t in transactions:
        total += t.amount
        if t.is_paid:
            paid += t.amount
            paid_count += 1
        else:
            unpaid += t.amount
            unpaid_count += 1
        if t.is_cash:
            cash += t.amount
            cash_count += 1
    return PaymentSummary(
        total_spent=total,
        paid_amount=paid,
        unpaid_amount=unpaid,
        paid_count=paid_count,
        unpaid_count=unpaid_count,
        cash_amount=cash,
        cash_count=cash_count,
    )


def _percentage(part: Decimal, whole: Decimal) -> float:
    if whole == 0:
        return 0.0
    return float(part / whole * 100)


def group_by_key(
    transactions: Transactions, key_fn: Callable[[Transaction], str]
) -> list[GroupTotal]:
    """Group by ``key_fn`` and return totals sorted by total, largest first.

    Keys with equal totals keep first-encountered order.
    """

    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    grand = ZERO
    for t in transactions:
        key = key_fn(t)
        totals[key] = totals.get(key, ZERO) + t.amount
        counts[key] = counts.get(key, 0) + 1
        grand += t.amount

    groups = [
        GroupTotal(key=key, total=total, count=counts[key], percentage=_percentage(total, grand))
        for key, total in totals.items()
    ]
    return sorted(groups, key=lambda g: g.total, reverse=True)


def group_by_category(transactions: Transactions) -> list[GroupTotal]:
    return group_by_key(transactions, lambda t: t.category)


def group_by_source(
    transactions: Transactions, *, unknown_label: str = UNKNOWN_SOURCE
) -> list[GroupTotal]:
    """Group by source; an empty source is bucketed under ``unknown_label``."""

    return group_by_key(transactions, lambda t: t.source or unknown_label)


def top_n(groups: Sequence[GroupTotal], n: int) -> list[GroupTotal]:
    """First ``n`` entries of an already sorted grouping, without re-sorting."""

    if n <= 0:
        return []
    return list(groups[:n])


def top_categories(transactions: Transactions, n: int = 5) -> list[GroupTotal]:
    return top_n(group_by_category(transactions), n)


def top_sources(
    transactions: Transactions, n: int = 5, *, unknown_label: str = UNKNOWN_SOURCE
) -> list[GroupTotal]:
    return top_n(group_by_source(transactions, unknown_label=unknown_label), n)


def top_category(transactions: Transactions) -> GroupTotal | None:
    """Largest category, or ``None`` when there are no transactions."""

    groups = group_by_category(transactions)
    return groups[0] if groups else None


__all__ = [
    "UNKNOWN_SOURCE",
    "group_by_category",
    "group_by_key",
    "group_by_source",
    "payment_summary",
    "top_categories",
    "top_category",
    "top_n",
    "top_sources",
]
