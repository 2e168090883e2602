"""Ledger export ingestion: preamble handling, CSV tokenizing, row mapping."""

from .ledger_csv import ColumnIndex, ingest_content, map_row, parse_ledger_csv
from .utils import is_csv_filename, load_transactions_from_path, read_ledger_bytes

__all__ = [
    "ColumnIndex",
    "ingest_content",
    "is_csv_filename",
    "load_transactions_from_path",
    "map_row",
    "parse_ledger_csv",
    "read_ledger_bytes",
]
