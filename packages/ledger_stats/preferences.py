"""Injected preference storage.

The statistics core never touches persistence: callers load
:class:`~ledger_stats.models.UserPreferences` from a ``PreferenceStore`` and
pass plain values (file selection, exclusion sets) into filters. Three stores
are provided:

- ``MemoryPreferenceStore``: process-local, for tests and embedding;
- ``JsonFilePreferenceStore``: one JSON file, written atomically
  (``.tmp`` then ``os.replace``);
- ``SqlPreferenceStore``: one keyed row in ``ledger_preferences`` through the
  shared ``db`` library.

``load()`` returns defaults when nothing is stored yet. A stored payload that
cannot be decoded raises :class:`~ledger_stats.errors.PreferenceStoreError`
rather than being silently replaced by defaults.
"""

from __future__ import annotations

import contextlib
import json
import os
from os import PathLike
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from .errors import PreferenceStoreError
from .logging_setup import get_logger
from .models import UserPreferences

_logger = get_logger("ledger_stats.preferences")


@runtime_checkable
class PreferenceStore(Protocol):
    def load(self) -> UserPreferences: ...

    def save(self, value: UserPreferences) -> None: ...

    def clear(self) -> None: ...


def _decode(payload: Any, *, where: str) -> UserPreferences:
    try:
        return UserPreferences.model_validate(payload)
    except ValidationError as e:
        raise PreferenceStoreError(f"invalid preferences in {where}: {e}") from e


class MemoryPreferenceStore:
    def __init__(self, initial: UserPreferences | None = None) -> None:
        self._value = initial

    def load(self) -> UserPreferences:
        return self._value or UserPreferences()

    def save(self, value: UserPreferences) -> None:
        self._value = value

    def clear(self) -> None:
        self._value = None


class JsonFilePreferenceStore:
    """Preferences kept in a single JSON file."""

    def __init__(self, path: str | PathLike[str]) -> None:
        self.path = Path(path)

    def load(self) -> UserPreferences:
        if not self.path.exists():
            return UserPreferences()
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise PreferenceStoreError(f"cannot read preferences from {self.path}: {e}") from e
        return _decode(payload, where=os.fspath(self.path))

    def save(self, value: UserPreferences) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp.write_text(
                json.dumps(value.model_dump(mode="json"), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp, self.path)
        except Exception:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
            raise
        _logger.debug("preferences saved to %s", os.fspath(self.path))

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class SqlPreferenceStore:
    """Preferences kept as a JSON payload row keyed by ``key``."""

    def __init__(self, *, database_url: str | None = None, key: str = "default") -> None:
        self.database_url = database_url
        self.key = key

    def load(self) -> UserPreferences:
        from db.client import session_scope
        from db.models.ledger import LedgerPreference

        with session_scope(database_url=self.database_url) as session:
            row = session.get(LedgerPreference, self.key)
            payload = dict(row.payload) if row is not None else None
        if payload is None:
            return UserPreferences()
        return _decode(payload, where=f"ledger_preferences[{self.key!r}]")

    def save(self, value: UserPreferences) -> None:
        from db.client import session_scope
        from db.models.ledger import LedgerPreference

        payload = value.model_dump(mode="json")
        with session_scope(database_url=self.database_url) as session:
            row = session.get(LedgerPreference, self.key)
            if row is None:
                session.add(LedgerPreference(key=self.key, payload=payload))
            else:
                row.payload = payload

    def clear(self) -> None:
        from db.client import session_scope
        from db.models.ledger import LedgerPreference

        with session_scope(database_url=self.database_url) as session:
            row = session.get(LedgerPreference, self.key)
            if row is not None:
                session.delete(row)


__all__ = [
    "JsonFilePreferenceStore",
    "MemoryPreferenceStore",
    "PreferenceStore",
    "SqlPreferenceStore",
]
