"""Classification of free-text payment and cash markers.

Ledger exports mark paid and cash rows inconsistently: Polish and English
words, ``true``, checkmark glyphs, and sometimes a checkmark whose UTF-8 bytes
were decoded as Windows-1252 along the way (``âœ…``). Both classifiers share
one fixed vocabulary; anything outside it, including an empty cell, is
``False``.
"""

from __future__ import annotations

# Compared after ``strip()`` + ``casefold()``.
TRUTHY_MARKERS: frozenset[str] = frozenset(
    {
        "tak",
        "yes",
        "true",
        "✅",  # U+2705
        "✅️",
        "✔",  # U+2714
        "✔️",
        "✓",  # U+2713
        "☑",  # U+2611
        # ✅ encoded as UTF-8 and decoded as cp1252; seen in real exports.
        "âœ…",
    }
)

# A cell such as "✅ przelew" still counts as marked.
_CHECKMARK_GLYPHS: tuple[str, ...] = ("✅", "✔", "✓", "☑")


def is_truthy_marker(value: str | None) -> bool:
    """Return ``True`` when ``value`` is a recognized truthy marker."""

    if not value:
        return False
    token = value.strip().casefold()
    if not token:
        return False
    if token in TRUTHY_MARKERS:
        return True
    return any(glyph in token for glyph in _CHECKMARK_GLYPHS)


def classify_paid(value: str | None) -> bool:
    """Paid flag for a transaction; unrecognized or empty means unpaid."""

    return is_truthy_marker(value)


def classify_cash(value: str | None) -> bool:
    """Cash flag for a transaction, using the same vocabulary as ``classify_paid``.

    Callers holding only the raw marker (``Transaction.cash_marker`` or the
    remote ``isCash`` string) use this to re-derive the flag consistently.
    """

    return is_truthy_marker(value)


__all__ = ["TRUTHY_MARKERS", "classify_cash", "classify_paid", "is_truthy_marker"]
