"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger domain models used by ``ledger_stats``.
"""

from .ledger import Base, LedgerFile, LedgerPreference, LedgerTransaction

__all__ = [
    "Base",
    "LedgerFile",
    "LedgerPreference",
    "LedgerTransaction",
]
