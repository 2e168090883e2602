"""Ingest utilities shared by CLI commands and repositories.

Reading the file is the only I/O in the ingestion path. Any failure to read
it (missing file, permission, a directory passed by mistake) surfaces once as
:class:`~ledger_stats.errors.IngestionError`; nothing is retried.
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path

from ..config import IngestSettings
from ..errors import IngestionError
from ..models import Transaction
from .ledger_csv import ingest_content


def is_csv_filename(name: str) -> bool:
    """Accept only ``.csv`` names (case-insensitive), as the upload flow does."""

    return name.strip().lower().endswith(".csv")


def read_ledger_bytes(path: str | PathLike[str]) -> bytes:
    p = Path(path)
    try:
        return p.read_bytes()
    except FileNotFoundError as e:
        raise IngestionError(f"file not found: {p}") from e
    except PermissionError as e:
        raise IngestionError(f"permission denied: {p}") from e
    except OSError as e:
        raise IngestionError(f"failed to read {p}: {e}") from e


def load_transactions_from_path(
    path: str | PathLike[str],
    *,
    file_id: str | None = None,
    settings: IngestSettings | None = None,
) -> list[Transaction]:
    """Read a ledger export from disk and return its transactions."""

    return ingest_content(read_ledger_bytes(path), file_id=file_id, settings=settings)


__all__ = ["is_csv_filename", "load_transactions_from_path", "read_ledger_bytes"]
