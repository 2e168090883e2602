"""Pytest configuration for test isolation.

The CLI and settings loader read ``DATABASE_URL``, ``LEDGER_STATS_*`` and a
local ``.env`` / ``ledger_stats.json`` from the working directory, and the
``db`` library keeps one process-wide engine. Any of these leaking between
tests (or from the developer's shell) makes results depend on run order.

To keep tests hermetic, an autouse fixture clears the relevant environment,
runs each test from its own temporary directory and disposes the shared
engine afterwards.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make the workspace packages importable without an editable install
_ROOT = Path(__file__).resolve().parents[1]
for _p in (_ROOT / "packages", _ROOT / "libs" / "db" / "src", _ROOT):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

from db.client import dispose_engine  # noqa: E402

_ENV_VARS = (
    "DATABASE_URL",
    "LEDGER_STATS_API_URL",
    "LEDGER_STATS_PREFS_PATH",
    "LEDGER_STATS_TIMEOUT",
    "LEDGER_STATS_LOG_LEVEL",
    "LEDGER_STATS_SKIP_ROWS",
)


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Per-test working directory, clean settings env, fresh DB engine."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    dispose_engine()
    yield
    dispose_engine()


@pytest.fixture
def data_dir() -> Path:
    return Path(__file__).resolve().parent / "data"
