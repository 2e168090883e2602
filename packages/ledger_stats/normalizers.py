"""Amount normalization for ledger exports of unknown locale.

Amount cells arrive as free text: an optional currency marker (``zł``,
``$``, ``€`` or the codes ``PLN``/``USD``/``EUR``), arbitrary whitespace
including non-breaking spaces, and a numeral whose grouping and decimal
separators are not declared anywhere. :func:`normalize_amount` resolves the
separators purely from the textual pattern:

- both ``,`` and ``.`` present: the one occurring last is the decimal
  separator and every occurrence of the other is a thousands separator;
- only ``,`` present: a comma followed by exactly two trailing digits is the
  decimal separator, otherwise every comma is a thousands separator;
- only ``.`` (or neither): parsed as-is with ``.`` as the decimal point.

The result is parsed strictly; any residue that is not a plain decimal numeral
raises :class:`~ledger_stats.errors.AmountNormalizationError`. Nothing here
consults the process locale.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal

from .errors import AmountNormalizationError

_CURRENCY_RE = re.compile(r"zł|pln|usd|eur|€|\$", re.IGNORECASE)
# ``\s`` on str patterns covers NBSP (U+00A0) and narrow NBSP (U+202F).
_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_DECIMAL_COMMA_RE = re.compile(r",\d{2}$")
_PLAIN_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")

DEFAULT_CURRENCY_MARKER = "zł"


def clean_amount_text(raw: str) -> str:
    """Strip currency markers and all whitespace from ``raw``."""

    return _WHITESPACE_RE.sub("", _CURRENCY_RE.sub("", raw)).strip()


def _resolve_separators(s: str) -> str:
    has_comma = "," in s
    has_dot = "." in s
    if has_comma and has_dot:
        if s.rfind(",") > s.rfind("."):
            # 1.092,50
            return s.replace(".", "").replace(",", ".")
        # 1,092.50
        return s.replace(",", "")
    if has_comma:
        if _TRAILING_DECIMAL_COMMA_RE.search(s):
            # 123,45 -> only the final comma becomes the decimal point
            return f"{s[:-3]}.{s[-2:]}"
        # 1,234 / 1,234,567
        return s.replace(",", "")
    return s


def normalize_amount(raw: str | None) -> Decimal | None:
    """Parse an amount cell into a signed :class:`~decimal.Decimal`.

    Returns ``None`` when nothing but currency markers and whitespace remains
    (the "no amount" signal, distinct from zero). Raises
    :class:`AmountNormalizationError` when the cleaned text is not numeric.

    Examples
    --------
    >>> normalize_amount("1.092,50 zł")
    Decimal('1092.50')
    >>> normalize_amount("$1,092.50")
    Decimal('1092.50')
    >>> normalize_amount("  PLN ") is None
    True
    """

    if raw is None:
        return None
    s = clean_amount_text(raw)
    if not s:
        return None

    s = s.replace("−", "-")
    negative = False
    if len(s) >= 2 and s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1]

    s = _resolve_separators(s)
    if not _PLAIN_NUMBER_RE.fullmatch(s):
        raise AmountNormalizationError(raw, s)

    value = Decimal(s)
    return -abs(value) if negative else value


def currency_marker(original: str | None, default: str = DEFAULT_CURRENCY_MARKER) -> str:
    """Return the first currency marker found in ``original`` or ``default``."""

    if original:
        m = _CURRENCY_RE.search(original)
        if m:
            return m.group(0)
    return default


def format_amount(amount: Decimal, original: str | None = None) -> str:
    """Render ``amount`` for display with the currency of its source cell.

    Polish conventions: comma decimal separator, two places, and a space as
    thousands separator only from five integer digits up (``1092,50`` but
    ``12 345,00``).
    """

    q = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if q < 0 else ""
    integer, _, fraction = f"{abs(q):.2f}".partition(".")
    if len(integer) > 4:
        groups = []
        while integer:
            groups.append(integer[-3:])
            integer = integer[:-3]
        integer = " ".join(reversed(groups))
    return f"{sign}{integer},{fraction} {currency_marker(original)}"


__all__ = [
    "DEFAULT_CURRENCY_MARKER",
    "clean_amount_text",
    "currency_marker",
    "format_amount",
    "normalize_amount",
]
