from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class DecimalText(TypeDecorator[Decimal]):
    """Exact decimal stored as its canonical text; no backend rounding."""

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: Any) -> str | None:
        return None if value is None else str(Decimal(value))

    def process_result_value(self, value: str | None, dialect: Any) -> Decimal | None:
        return None if value is None else Decimal(value)


# ---------------------------
# Ingested files
# ---------------------------


class LedgerFile(Base):
    __tablename__ = "ledger_files"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    # A file owns its transactions; transactions never move between files.
    transactions: Mapped[list[LedgerTransaction]] = relationship(
        back_populates="file",
        cascade="all, delete-orphan",
        order_by="LedgerTransaction.position",
    )

    __table_args__ = (Index("idx_ledger_files_name", "name"),)


# ---------------------------
# Core: ledger_transactions
# ---------------------------


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    file_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("ledger_files.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Zero-based row position within the owning file; preserves display order.
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(DecimalText, nullable=False)
    amount_original: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_cash: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Verbatim cash marker cell, kept for consumers with their own truthy rules.
    cash_marker: Mapped[str] = mapped_column(Text, nullable=False, default="")
    transaction_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    file: Mapped[LedgerFile] = relationship(back_populates="transactions")

    __table_args__ = (
        Index("idx_ledger_tx_file_id", "file_id"),
        Index("idx_ledger_tx_category", "category"),
        Index("idx_ledger_tx_source", "source"),
        Index("idx_ledger_tx_is_paid", "is_paid"),
        Index("idx_ledger_tx_date", "transaction_date"),
    )


# ---------------------------
# Persisted user preferences
# ---------------------------


class LedgerPreference(Base):
    __tablename__ = "ledger_preferences"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


__all__ = [
    "Base",
    "LedgerFile",
    "LedgerPreference",
    "LedgerTransaction",
]
