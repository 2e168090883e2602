from __future__ import annotations

import json
from pathlib import Path

import pytest

from ledger_stats.errors import PreferenceStoreError
from ledger_stats.models import TransactionFilter, UserPreferences
from ledger_stats.preferences import (
    JsonFilePreferenceStore,
    MemoryPreferenceStore,
    PreferenceStore,
    SqlPreferenceStore,
)
from tests.helpers.db import bootstrap_sqlite_db


def _prefs() -> UserPreferences:
    return UserPreferences(
        selected_file_ids=("a", "b", "a"),
        excluded_categories=("Rent",),
        excluded_sources=("Cash",),
    )


def test_user_preferences_dedupe_and_ignore_unknown_keys() -> None:
    prefs = UserPreferences.model_validate(
        {"selected_file_ids": ["a", "a", "b"], "theme": "dark"}
    )
    assert prefs.selected_file_ids == ("a", "b")
    assert prefs.excluded_categories == ()


def test_filter_from_preferences() -> None:
    flt = TransactionFilter.from_preferences(_prefs(), is_paid=True)
    assert flt.file_ids == frozenset({"a", "b"})
    assert flt.exclude_categories == frozenset({"Rent"})
    assert flt.exclude_sources == frozenset({"Cash"})
    assert flt.is_paid is True


def test_memory_store() -> None:
    store = MemoryPreferenceStore()
    assert isinstance(store, PreferenceStore)
    assert store.load() == UserPreferences()
    store.save(_prefs())
    assert store.load().selected_file_ids == ("a", "b")
    store.clear()
    assert store.load() == UserPreferences()


def test_json_file_store_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "prefs.json"
    store = JsonFilePreferenceStore(path)

    assert store.load() == UserPreferences()
    store.save(_prefs())

    assert json.loads(path.read_text(encoding="utf-8"))["excluded_sources"] == ["Cash"]
    assert not path.with_suffix(".json.tmp").exists()
    assert JsonFilePreferenceStore(path).load() == _prefs()

    store.clear()
    assert not path.exists()
    store.clear()


def test_json_file_store_rejects_corrupt_payload(tmp_path: Path) -> None:
    path = tmp_path / "prefs.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PreferenceStoreError):
        JsonFilePreferenceStore(path).load()

    path.write_text(json.dumps({"selected_file_ids": 5}), encoding="utf-8")
    with pytest.raises(PreferenceStoreError):
        JsonFilePreferenceStore(path).load()


def test_sql_store_round_trip(tmp_path: Path) -> None:
    url = bootstrap_sqlite_db(tmp_path / "ledger.db")
    store = SqlPreferenceStore(database_url=url)

    assert store.load() == UserPreferences()
    store.save(_prefs())
    store.save(_prefs().model_copy(update={"excluded_sources": ("Card",)}))

    loaded = store.load()
    assert loaded.excluded_sources == ("Card",)
    assert loaded.selected_file_ids == ("a", "b")
    assert SqlPreferenceStore(database_url=url, key="other").load() == UserPreferences()

    store.clear()
    assert store.load() == UserPreferences()
