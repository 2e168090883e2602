"""Exception types raised by ``ledger_stats``.

Row-level problems during ingestion (blank rows, unparseable amounts) are not
errors at this level: the pipeline drops those rows and keeps going. Only
failures that end an operation surface as one of the types below.
"""

from __future__ import annotations


class LedgerStatsError(Exception):
    """Base class for all package errors."""


class IngestionError(LedgerStatsError):
    """The ledger file could not be read or decoded at all."""


class AmountNormalizationError(LedgerStatsError, ValueError):
    """An amount cell contains residue that is not a decimal number."""

    def __init__(self, raw: str, cleaned: str) -> None:
        super().__init__(f"invalid amount: {raw!r} (normalized to {cleaned!r})")
        self.raw = raw
        self.cleaned = cleaned


class RemoteServiceError(LedgerStatsError):
    """The remote statistics service failed or returned an unusable body.

    ``status`` is the HTTP status code when the service answered, ``None`` for
    transport failures (DNS, refused connection, timeout).
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class PreferenceStoreError(LedgerStatsError):
    """Stored preferences exist but cannot be read or decoded."""


__all__ = [
    "AmountNormalizationError",
    "IngestionError",
    "LedgerStatsError",
    "PreferenceStoreError",
    "RemoteServiceError",
]
