"""Builders for transactions and ledger CSV text used across tests."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from itertools import count

from ledger_stats.models import Transaction

_ids = count(1)

PREAMBLE = "Budżet domowy\nEksport: 2024-05-01\n\n"
HEADER = "Rodzaj,Skąd,Co,Za ile,Opłacone?,Gotówka,Data"


def make_tx(
    amount: str | int,
    *,
    category: str = "Food",
    source: str = "Card",
    file_id: str = "f1",
    is_paid: bool = False,
    is_cash: bool = False,
    description: str = "",
    transaction_date: str | None = None,
) -> Transaction:
    return Transaction(
        id=f"t{next(_ids)}",
        file_id=file_id,
        category=category,
        source=source,
        description=description,
        amount=Decimal(str(amount)),
        amount_original=str(amount),
        is_paid=is_paid,
        is_cash=is_cash,
        cash_marker="tak" if is_cash else "",
        transaction_date=transaction_date,
    )


def ledger_csv(rows: Sequence[str], *, header: str = HEADER, preamble: str = PREAMBLE) -> str:
    """Ledger export text: three preamble lines, the header, then ``rows``."""

    return preamble + header + "\n" + "\n".join(rows) + "\n"
