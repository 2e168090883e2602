"""Ingestion of ledger CSV exports with a metadata preamble.

File layout
-----------
- The first ``skip_rows`` physical lines (3 by default) are metadata and are
  discarded unconditionally; they are never header candidates.
- The remaining text is an RFC 4180 style table (comma delimited, double-quote
  escaped) read with the stdlib :mod:`csv` module, so quoted amounts such as
  ``"1.092,50 zł"`` keep their embedded comma.
- The first non-blank row is the header. Columns are located by exact name
  (see :class:`~ledger_stats.config.LedgerColumns`), resolved once into a
  :class:`ColumnIndex` and reused for every data row. A missing column is not
  fatal: its field reads as an empty string on every row.

Row rules
---------
- rows whose cells are all blank are skipped;
- rows whose amount is empty or does not normalize are dropped;
- every accepted row gets a fresh id and the ingesting file's id, and output
  order equals input order.

Only undecodable input is an error (:class:`~ledger_stats.errors.IngestionError`);
everything row-local is dropped and logged at DEBUG.
"""

from __future__ import annotations

import csv
import io
import uuid
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime

from ..config import IngestSettings, LedgerColumns
from ..errors import AmountNormalizationError, IngestionError
from ..logging_setup import get_logger
from ..models import Transaction
from ..normalizers import normalize_amount
from ..status import classify_cash, classify_paid

_logger = get_logger("ledger_stats.ingest.ledger_csv")

# Day-first formats seen in exports; ISO first.
_DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Header discovery and row mapping
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ColumnIndex:
    """Concrete column positions for one ingestion call (``None`` = absent)."""

    category: int | None
    source: int | None
    description: int | None
    amount: int | None
    paid: int | None
    cash: int | None
    date: int | None = None

    @classmethod
    def resolve(cls, header: Sequence[str], columns: LedgerColumns) -> ColumnIndex:
        positions: dict[str, int] = {}
        for i, name in enumerate(header):
            # First occurrence wins when a header name repeats.
            positions.setdefault(name.strip(), i)
        return cls(
            category=positions.get(columns.category),
            source=positions.get(columns.source),
            description=positions.get(columns.description),
            amount=positions.get(columns.amount),
            paid=positions.get(columns.paid),
            cash=positions.get(columns.cash),
            date=positions.get(columns.date),
        )

    def missing(self) -> list[str]:
        """Names of the required fields that were not found in the header."""

        required = ("category", "source", "description", "amount", "paid", "cash")
        return [name for name in required if getattr(self, name) is None]


def _cell(row: Sequence[str], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index]


def parse_transaction_date(value: str) -> str | None:
    """Return ``value`` as ISO ``YYYY-MM-DD`` or ``None`` when unrecognized."""

    s = value.strip()
    if not s:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date().isoformat()
        except ValueError:
            continue
    return None


def is_blank_row(row: Sequence[str]) -> bool:
    return all(not (cell or "").strip() for cell in row)


def map_row(
    row: Sequence[str],
    columns: ColumnIndex,
    *,
    file_id: str,
    id_factory: Callable[[], str] = _new_id,
) -> Transaction | None:
    """Map one tokenized data row to a :class:`Transaction`.

    Returns ``None`` when the amount cell is empty (or holds only a currency
    marker). Raises :class:`AmountNormalizationError` when it is not numeric.
    """

    amount_original = _cell(row, columns.amount)
    amount = normalize_amount(amount_original)
    if amount is None:
        return None

    cash_marker = _cell(row, columns.cash).strip()
    return Transaction(
        id=id_factory(),
        file_id=file_id,
        category=_cell(row, columns.category).strip(),
        source=_cell(row, columns.source).strip(),
        description=_cell(row, columns.description).strip(),
        amount=amount,
        amount_original=amount_original,
        is_paid=classify_paid(_cell(row, columns.paid)),
        is_cash=classify_cash(cash_marker),
        cash_marker=cash_marker,
        transaction_date=parse_transaction_date(_cell(row, columns.date)),
    )


# ---------------------------------------------------------------------------
# Text handling
# ---------------------------------------------------------------------------


def decode_content(content: bytes | str, settings: IngestSettings) -> str:
    """Decode raw file bytes, falling back to ``settings.fallback_encoding``."""

    if isinstance(content, str):
        return content.removeprefix("\ufeff")
    try:
        return content.decode(settings.encoding)
    except UnicodeDecodeError as primary:
        if not settings.fallback_encoding:
            raise IngestionError(
                f"ledger file is not valid {settings.encoding}: {primary}"
            ) from primary
        _logger.warning(
            "ledger file is not valid %s; decoding as %s",
            settings.encoding,
            settings.fallback_encoding,
        )
        try:
            return content.decode(settings.fallback_encoding)
        except UnicodeDecodeError as fallback:
            raise IngestionError(
                f"ledger file could not be decoded as {settings.encoding} "
                f"or {settings.fallback_encoding}: {fallback}"
            ) from fallback


def _skip_preamble(text: str, skip_rows: int) -> io.StringIO:
    # newline="" keeps original line endings so quoted newlines survive
    stream = io.StringIO(text, newline="")
    for _ in range(skip_rows):
        if not stream.readline():
            break
    return stream


def iter_table_rows(stream: io.StringIO, *, line_offset: int = 0) -> Iterator[tuple[int, list[str]]]:
    """Yield ``(line_number, cells)`` for each CSV record in ``stream``.

    Records the :mod:`csv` module rejects are logged and skipped; reading
    continues with the next record. A quote that is never closed runs to the
    end of the input, so every line after it lands in that one record.
    """

    reader = csv.reader(stream)
    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            _logger.debug("line %d: malformed CSV record dropped: %s", line_offset + reader.line_num, e)
            continue
        yield line_offset + reader.line_num, row


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def parse_ledger_csv(
    text: str,
    *,
    file_id: str | None = None,
    settings: IngestSettings | None = None,
    id_factory: Callable[[], str] = _new_id,
) -> list[Transaction]:
    """Convert ledger CSV text into transactions, preserving row order.

    Parameters
    ----------
    text:
        Whole file content as text.
    file_id:
        Identifier of the owning file stamped on every transaction; a new
        UUID is generated when omitted.
    settings:
        Preamble size and expected column names. Defaults to
        :class:`~ledger_stats.config.IngestSettings`.
    id_factory:
        Produces transaction ids (UUID4 strings by default).
    """

    settings = settings or IngestSettings()
    owner = file_id or _new_id()
    rows = iter_table_rows(
        _skip_preamble(text, settings.skip_rows), line_offset=settings.skip_rows
    )

    columns: ColumnIndex | None = None
    for _line, row in rows:
        if not is_blank_row(row):
            columns = ColumnIndex.resolve(row, settings.columns)
            break
    if columns is None:
        _logger.info("file %s: no header row after %d preamble lines", owner, settings.skip_rows)
        return []

    missing = columns.missing()
    if missing:
        _logger.warning(
            "file %s: header is missing columns %s; those fields will be empty",
            owner,
            ", ".join(getattr(settings.columns, name) for name in missing),
        )

    transactions: list[Transaction] = []
    dropped = 0
    for line, row in rows:
        if is_blank_row(row):
            continue
        try:
            tx = map_row(row, columns, file_id=owner, id_factory=id_factory)
        except AmountNormalizationError as e:
            _logger.debug("line %d: row dropped: %s", line, e)
            dropped += 1
            continue
        if tx is None:
            _logger.debug("line %d: row dropped: empty amount", line)
            dropped += 1
            continue
        transactions.append(tx)

    _logger.info(
        "file %s: ingested %d transactions (%d rows dropped)", owner, len(transactions), dropped
    )
    return transactions


def ingest_content(
    content: bytes | str,
    *,
    file_id: str | None = None,
    settings: IngestSettings | None = None,
    id_factory: Callable[[], str] = _new_id,
) -> list[Transaction]:
    """Decode ``content`` (bytes or text) and run :func:`parse_ledger_csv`."""

    settings = settings or IngestSettings()
    text = decode_content(content, settings)
    return parse_ledger_csv(text, file_id=file_id, settings=settings, id_factory=id_factory)


__all__ = [
    "ColumnIndex",
    "decode_content",
    "ingest_content",
    "is_blank_row",
    "iter_table_rows",
    "map_row",
    "parse_ledger_csv",
    "parse_transaction_date",
]
