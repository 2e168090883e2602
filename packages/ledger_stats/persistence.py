# ruff: noqa: I001
"""Persistence integration for ledger_stats.

Functions here read and write ingested files and their transactions in the
shared database owned by ``libs/db``. They take an open SQLAlchemy
``Session`` and never commit; callers wrap them in
``db.client.session_scope`` so one unit of work covers e.g. "create file,
ingest, save transactions".

Files own transactions through ``ledger_transactions.file_id``; deleting a
file deletes its transactions. Transactions are returned in file upload order
and, within a file, in original row order.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import Decimal
import uuid

from sqlalchemy import Select, delete, func, select
from sqlalchemy.orm import Session

from db.models.ledger import LedgerFile, LedgerTransaction
from .config import IngestSettings
from .ingest.ledger_csv import ingest_content
from .logging_setup import get_logger
from .models import LedgerFileInfo, Transaction, TransactionFilter

_logger = get_logger("ledger_stats.persistence")


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on round-trip; stored values are always UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _to_domain(row: LedgerTransaction) -> Transaction:
    return Transaction(
        id=row.id,
        file_id=row.file_id,
        category=row.category,
        source=row.source,
        description=row.description,
        amount=Decimal(row.amount),
        amount_original=row.amount_original,
        is_paid=bool(row.is_paid),
        is_cash=bool(row.is_cash),
        cash_marker=row.cash_marker,
        transaction_date=row.transaction_date,
    )


def _file_info(row: LedgerFile, count: int | None = None) -> LedgerFileInfo:
    return LedgerFileInfo(
        id=row.id,
        name=row.name,
        uploaded_at=_as_utc(row.uploaded_at),
        transaction_count=count,
    )


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def create_file(
    session: Session,
    name: str,
    *,
    file_id: str | None = None,
    uploaded_at: datetime | None = None,
) -> LedgerFileInfo:
    row = LedgerFile(id=file_id or str(uuid.uuid4()), name=name)
    if uploaded_at is not None:
        row.uploaded_at = uploaded_at
    session.add(row)
    session.flush()
    return _file_info(row, 0)


def _count_stmt() -> Select:
    return select(LedgerTransaction.file_id, func.count().label("n")).group_by(
        LedgerTransaction.file_id
    )


def list_files(session: Session) -> list[LedgerFileInfo]:
    """All files, most recently uploaded first, with transaction counts."""

    counts = dict(session.execute(_count_stmt()).tuples().all())
    rows = session.scalars(
        select(LedgerFile).order_by(LedgerFile.uploaded_at.desc(), LedgerFile.name)
    ).all()
    return [_file_info(r, counts.get(r.id, 0)) for r in rows]


def get_file(session: Session, file_id: str) -> LedgerFileInfo | None:
    row = session.get(LedgerFile, file_id)
    if row is None:
        return None
    count = session.scalar(
        select(func.count()).select_from(LedgerTransaction).where(
            LedgerTransaction.file_id == file_id
        )
    )
    return _file_info(row, count or 0)


def delete_file(session: Session, file_id: str) -> bool:
    """Delete a file and its transactions; ``False`` when it does not exist."""

    row = session.get(LedgerFile, file_id)
    if row is None:
        return False
    session.execute(delete(LedgerTransaction).where(LedgerTransaction.file_id == file_id))
    session.delete(row)
    session.flush()
    _logger.info("deleted file %s (%s)", file_id, row.name)
    return True


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def save_transactions(session: Session, transactions: Iterable[Transaction]) -> int:
    """Insert transactions; positions follow iteration order per file."""

    next_pos: dict[str, int] = {}
    n = 0
    for t in transactions:
        if t.file_id not in next_pos:
            current = session.scalar(
                select(func.max(LedgerTransaction.position)).where(
                    LedgerTransaction.file_id == t.file_id
                )
            )
            next_pos[t.file_id] = 0 if current is None else current + 1
        session.add(
            LedgerTransaction(
                id=t.id,
                file_id=t.file_id,
                position=next_pos[t.file_id],
                category=t.category,
                source=t.source,
                description=t.description,
                amount=t.amount,
                amount_original=t.amount_original,
                is_paid=t.is_paid,
                is_cash=t.is_cash,
                cash_marker=t.cash_marker,
                transaction_date=t.transaction_date,
            )
        )
        next_pos[t.file_id] += 1
        n += 1
    session.flush()
    return n


def list_transactions(
    session: Session, flt: TransactionFilter | None = None
) -> list[Transaction]:
    """Transactions matching ``flt``; same semantics as ``filters.apply_filter``."""

    flt = flt or TransactionFilter()
    stmt = select(LedgerTransaction).join(LedgerFile, LedgerTransaction.file_id == LedgerFile.id)
    if flt.file_ids:
        stmt = stmt.where(LedgerTransaction.file_id.in_(sorted(flt.file_ids)))
    if flt.exclude_categories:
        stmt = stmt.where(LedgerTransaction.category.not_in(sorted(flt.exclude_categories)))
    if flt.exclude_sources:
        stmt = stmt.where(LedgerTransaction.source.not_in(sorted(flt.exclude_sources)))
    if flt.is_paid is not None:
        stmt = stmt.where(LedgerTransaction.is_paid.is_(flt.is_paid))
    if flt.date_from is not None:
        stmt = stmt.where(LedgerTransaction.transaction_date >= flt.date_from)
    if flt.date_to is not None:
        stmt = stmt.where(LedgerTransaction.transaction_date <= flt.date_to)
    stmt = stmt.order_by(
        LedgerFile.uploaded_at, LedgerFile.id, LedgerTransaction.position
    )
    return [_to_domain(r) for r in session.scalars(stmt).all()]


def import_ledger_file(
    session: Session,
    name: str,
    content: bytes | str,
    *,
    settings: IngestSettings | None = None,
) -> tuple[LedgerFileInfo, list[Transaction]]:
    """Create a file record, ingest ``content`` under it and store the rows."""

    info = create_file(session, name)
    transactions = ingest_content(content, file_id=info.id, settings=settings)
    save_transactions(session, transactions)
    _logger.info("imported %s as file %s (%d transactions)", name, info.id, len(transactions))
    return LedgerFileInfo(
        id=info.id,
        name=info.name,
        uploaded_at=info.uploaded_at,
        transaction_count=len(transactions),
    ), transactions


__all__ = [
    "create_file",
    "delete_file",
    "get_file",
    "import_ledger_file",
    "list_files",
    "list_transactions",
    "save_transactions",
]
