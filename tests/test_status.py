from __future__ import annotations

import pytest

from ledger_stats.status import classify_cash, classify_paid, is_truthy_marker


@pytest.mark.parametrize(
    "value",
    ["tak", "TAK", " Tak ", "yes", "True", "✅", "✔", "✔️", "✓", "☑", "âœ…", "✅ przelew"],
)
def test_truthy_markers(value: str) -> None:
    assert is_truthy_marker(value)
    assert classify_paid(value)
    assert classify_cash(value)


@pytest.mark.parametrize("value", ["", "   ", None, "nie", "no", "false", "0", "❌", "x"])
def test_everything_else_is_false(value: str | None) -> None:
    assert not classify_paid(value)
    assert not classify_cash(value)


def test_paid_and_cash_share_vocabulary() -> None:
    for value in ("tak", "nie", "✅", "", "maybe"):
        assert classify_paid(value) == classify_cash(value)
