from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from ledger_stats.cli import app
from tests.helpers.db import bootstrap_sqlite_db
from tests.helpers.ledger import ledger_csv

runner = CliRunner()


def _invoke(*args: str):
    return runner.invoke(app, ["--log-level", "ERROR", *args])


@pytest.fixture
def ledger_file(tmp_path: Path) -> Path:
    path = tmp_path / "may.csv"
    path.write_text(
        ledger_csv(
            [
                'Food,Shop,Milk,"300,00 zł",tak,,2024-05-01',
                "Rent,Bank,May,100,nie,tak,",
                "Fun,Card,Cinema,abc,tak,,",
            ]
        ),
        encoding="utf-8",
    )
    return path


def test_ingest_prints_transactions(ledger_file: Path) -> None:
    result = _invoke("ingest", str(ledger_file))

    assert result.exit_code == 0, result.output
    lines = result.stdout.strip().splitlines()
    assert len(lines) == 2
    assert lines[0].split("\t") == [
        "2024-05-01",
        "Food",
        "Shop",
        "Milk",
        "300,00 zł",
        "paid=yes",
        "cash=no",
    ]


def test_ingest_json(ledger_file: Path) -> None:
    result = _invoke("ingest", str(ledger_file), "--json")

    assert result.exit_code == 0, result.output
    rows = json.loads(result.stdout)
    assert [r["amount"] for r in rows] == [300.0, 100.0]
    assert rows[1]["isCash"] == "tak"


def test_ingest_missing_file_fails(tmp_path: Path) -> None:
    result = _invoke("ingest", str(tmp_path / "absent.csv"))

    assert result.exit_code == 1
    assert "Error: file not found" in result.output


def test_report_from_csv_with_exclusions(ledger_file: Path) -> None:
    result = _invoke("report", str(ledger_file), "--json")

    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout)
    assert report["summary"]["totalSpent"] == 400.0
    assert report["summary"]["cashCount"] == 1
    assert [(c["category"], c["percentage"]) for c in report["categories"]] == [
        ("Food", 75.0),
        ("Rent", 25.0),
    ]

    result = _invoke("report", str(ledger_file), "--exclude-category", "Food", "--json")
    report = json.loads(result.stdout)
    assert [(c["category"], c["percentage"]) for c in report["categories"]] == [("Rent", 100.0)]


def test_report_top_limits_groups_but_not_summary(ledger_file: Path) -> None:
    result = _invoke("report", str(ledger_file), "--top", "1", "--json")

    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout)
    assert report["summary"]["totalSpent"] == 400.0
    assert [c["category"] for c in report["categories"]] == ["Food"]
    assert [s["source"] for s in report["sources"]] == ["Shop"]

    report = json.loads(_invoke("report", str(ledger_file), "--top", "0", "--json").stdout)
    assert [c["category"] for c in report["categories"]] == ["Food", "Rent"]


def test_report_text_output(ledger_file: Path) -> None:
    result = _invoke("report", str(ledger_file))

    assert result.exit_code == 0, result.output
    assert "Total spent:   400,00 zł (2)" in result.stdout
    assert "Categories:" in result.stdout
    assert "75.00%" in result.stdout


def test_report_applies_stored_exclusions(ledger_file: Path) -> None:
    assert _invoke("prefs", "set", "--exclude-source", "Bank").exit_code == 0

    report = json.loads(_invoke("report", str(ledger_file), "--json").stdout)
    assert report["summary"]["totalSpent"] == 300.0

    report = json.loads(_invoke("report", str(ledger_file), "--no-prefs", "--json").stdout)
    assert report["summary"]["totalSpent"] == 400.0


def test_report_without_source_configured_fails() -> None:
    result = _invoke("report")
    assert result.exit_code == 1
    assert "DATABASE_URL is not set" in result.output

    result = _invoke("report", "--remote")
    assert result.exit_code == 1
    assert "no statistics service configured" in result.output


def test_import_files_and_delete(ledger_file: Path, tmp_path: Path) -> None:
    url = bootstrap_sqlite_db(tmp_path / "cli.db")

    result = _invoke("--database-url", url, "import", str(ledger_file))
    assert result.exit_code == 0, result.output
    file_id, name, count = result.stdout.strip().split("\t")
    assert (name, count) == ("may.csv", "2 transactions")

    listed = json.loads(_invoke("--database-url", url, "files", "--json").stdout)
    assert [(f["id"], f["transactionCount"]) for f in listed] == [(file_id, 2)]

    assert _invoke("prefs", "set", "--select-file", file_id).exit_code == 0
    report = json.loads(_invoke("--database-url", url, "report", "--json").stdout)
    assert report["summary"]["totalSpent"] == 400.0

    result = _invoke("--database-url", url, "delete-file", file_id)
    assert result.exit_code == 0, result.output
    prefs = json.loads(_invoke("prefs", "show").stdout)
    assert prefs["selected_file_ids"] == []

    result = _invoke("--database-url", url, "delete-file", file_id)
    assert result.exit_code == 1
    assert "file not found" in result.output


def test_import_rejects_non_csv_names(tmp_path: Path) -> None:
    url = bootstrap_sqlite_db(tmp_path / "cli.db")
    path = tmp_path / "ledger.xlsx"
    path.write_bytes(b"")

    result = _invoke("--database-url", url, "import", str(path))

    assert result.exit_code == 1
    assert "only CSV files" in result.output


def test_prefs_set_show_clear() -> None:
    result = _invoke("prefs", "set", "--exclude-category", "Rent", "--exclude-category", "Fun")
    assert result.exit_code == 0, result.output

    result = _invoke("prefs", "set", "--exclude-source", "Cash")
    shown = json.loads(_invoke("prefs", "show").stdout)
    assert shown == {
        "selected_file_ids": [],
        "excluded_categories": ["Rent", "Fun"],
        "excluded_sources": ["Cash"],
    }
    assert Path(".ledger_stats/preferences.json").exists()

    assert _invoke("prefs", "clear").exit_code == 0
    assert json.loads(_invoke("prefs", "show").stdout)["excluded_categories"] == []


def test_invalid_configuration_exits_with_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LEDGER_STATS_SKIP_ROWS", "many")

    result = _invoke("prefs", "show")

    assert result.exit_code == 1
    assert "invalid configuration" in result.output


def test_dotenv_values_are_applied(ledger_file: Path) -> None:
    Path(".env").write_text("LEDGER_STATS_SKIP_ROWS=0\n", encoding="utf-8")

    result = _invoke("ingest", str(ledger_file), "--json")
    os.environ.pop("LEDGER_STATS_SKIP_ROWS", None)

    # No preamble skipped: the first metadata line is taken as the header.
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == []


def test_dotenv_does_not_override_environment(
    monkeypatch: pytest.MonkeyPatch, ledger_file: Path
) -> None:
    monkeypatch.setenv("LEDGER_STATS_SKIP_ROWS", "3")
    Path(".env").write_text("LEDGER_STATS_SKIP_ROWS=0\n", encoding="utf-8")

    result = _invoke("ingest", str(ledger_file), "--json")

    assert result.exit_code == 0, result.output
    assert len(json.loads(result.stdout)) == 2
