# ruff: noqa: I001
"""CLI for the ``ledger_stats`` package.

Command handlers (``cmd_*``) take plain values, print to stdout and return a
process exit code; the Typer commands below only translate options into those
calls. Environment variables are loaded from a local ``.env`` using
``python-dotenv`` in the root callback, before settings are read. Business
logic lives in the ingest, filters, aggregations, stats and persistence
modules.

Commands
--------
- ``ingest <csv>``: parse a ledger export and list its transactions;
- ``report [<csv>...]``: payment summary, category and source totals, from
  CSV files, the database, or the remote service (``--remote``);
- ``import <csv>``: store a ledger export in the database;
- ``files`` / ``delete-file <id>``: manage stored files;
- ``prefs show|set|clear``: persisted file selection and exclusions.

Errors are written to stderr and the command exits with status 1.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from .aggregations import top_n
from .config import AppSettings, load_settings
from .errors import LedgerStatsError
from .logging_setup import configure_logging, get_logger
from .models import GroupTotal, PaymentSummary, Transaction, TransactionFilter, UserPreferences
from .normalizers import format_amount

_logger = get_logger("ledger_stats.cli")


# ---- Small module-level helpers used by CLI commands -------------------------


def _error(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _print_transactions(transactions: Sequence[Transaction]) -> None:
    for t in transactions:
        print(
            "\t".join(
                [
                    t.transaction_date or "",
                    t.category,
                    t.source,
                    t.description,
                    format_amount(t.amount, t.amount_original),
                    f"paid={_yes_no(t.is_paid)}",
                    f"cash={_yes_no(t.is_cash)}",
                ]
            )
        )


def _print_groups(title: str, groups: Sequence[GroupTotal]) -> None:
    print(f"\n{title}:")
    if not groups:
        print("  (none)")
        return
    width = max(len(g.key) for g in groups)
    for g in groups:
        print(
            f"  {g.key:<{width}}  {format_amount(g.total):>16}  "
            f"{g.percentage:6.2f}%  ({g.count})"
        )


def _print_summary(summary: PaymentSummary) -> None:
    print(f"Total spent:   {format_amount(summary.total_spent)} ({summary.count})")
    print(f"Paid:          {format_amount(summary.paid_amount)} ({summary.paid_count})")
    print(f"Unpaid:        {format_amount(summary.unpaid_amount)} ({summary.unpaid_count})")
    print(f"Cash:          {format_amount(summary.cash_amount)} ({summary.cash_count})")


def _preference_store(settings: AppSettings):
    from .preferences import JsonFilePreferenceStore

    return JsonFilePreferenceStore(settings.preferences_path)


def _backend(settings: AppSettings, *, remote: bool):
    from .stats import LocalStatsBackend, RemoteStatsBackend

    if remote:
        if not settings.stats_api_url:
            raise LedgerStatsError(
                "no statistics service configured; set LEDGER_STATS_API_URL or --api-url"
            )
        return RemoteStatsBackend.from_url(
            settings.stats_api_url, timeout=settings.request_timeout
        )
    if not settings.database_url:
        raise LedgerStatsError("DATABASE_URL is not set; pass --database-url or a CSV path")
    from db.client import init_schema

    init_schema(database_url=settings.database_url)
    return LocalStatsBackend(
        database_url=settings.database_url,
        unknown_source_label=settings.ingest.unknown_source_label,
    )


# ---- Command handlers ---------------------------------------------------------


def cmd_ingest(settings: AppSettings, csv_path: Path, *, as_json: bool = False) -> int:
    """Parse ``csv_path`` and print one line (or JSON object) per transaction."""

    from .ingest import load_transactions_from_path

    try:
        transactions = load_transactions_from_path(csv_path, settings=settings.ingest)
    except LedgerStatsError as e:
        return _error(str(e))

    if as_json:
        _print_json([t.to_dict() for t in transactions])
    else:
        _print_transactions(transactions)
    return 0


def cmd_report(
    settings: AppSettings,
    csv_paths: Sequence[Path] = (),
    *,
    flt: TransactionFilter | None = None,
    use_preferences: bool = True,
    remote: bool = False,
    top: int = 0,
    as_json: bool = False,
) -> int:
    """Print the payment summary plus category and source totals.

    With ``csv_paths`` the files are ingested in memory (one file id per
    path); otherwise data comes from the database or, with ``remote``, from
    the statistics service. Stored preferences are merged into ``flt`` when
    ``use_preferences`` is set; the stored file selection only applies to
    stored files.
    """

    from .ingest import load_transactions_from_path
    from .stats import LocalStatsBackend

    flt = flt or TransactionFilter()
    try:
        if use_preferences:
            prefs = _preference_store(settings).load()
            stored_selection = frozenset() if csv_paths else frozenset(prefs.selected_file_ids)
            flt = TransactionFilter(
                file_ids=flt.file_ids or stored_selection,
                exclude_categories=flt.exclude_categories | frozenset(prefs.excluded_categories),
                exclude_sources=flt.exclude_sources | frozenset(prefs.excluded_sources),
                is_paid=flt.is_paid,
                date_from=flt.date_from,
                date_to=flt.date_to,
            )

        if csv_paths:
            transactions: list[Transaction] = []
            for path in csv_paths:
                transactions.extend(load_transactions_from_path(path, settings=settings.ingest))
            backend = LocalStatsBackend(
                transactions, unknown_source_label=settings.ingest.unknown_source_label
            )
        else:
            backend = _backend(settings, remote=remote)

        summary = backend.summary(flt)
        categories = backend.category_totals(flt)
        sources = backend.source_totals(flt)
    except LedgerStatsError as e:
        return _error(str(e))

    if top > 0:
        categories = top_n(categories, top)
        sources = top_n(sources, top)

    if as_json:
        _print_json(
            {
                "summary": summary.to_dict(),
                "categories": [c.to_dict("category") for c in categories],
                "sources": [s.to_dict("source") for s in sources],
                "topCategory": categories[0].to_dict("category") if categories else None,
            }
        )
        return 0

    _print_summary(summary)
    _print_groups("Categories", categories)
    _print_groups("Sources", sources)
    return 0


def cmd_import(settings: AppSettings, csv_path: Path, *, name: str | None = None) -> int:
    """Store ``csv_path`` in the database as a new file."""

    from db.client import init_schema, session_scope

    from .ingest import is_csv_filename, read_ledger_bytes
    from .persistence import import_ledger_file

    display_name = name or csv_path.name
    if not is_csv_filename(display_name):
        return _error(f"only CSV files can be imported: {display_name}")
    if not settings.database_url:
        return _error("DATABASE_URL is not set; pass --database-url")

    try:
        content = read_ledger_bytes(csv_path)
        init_schema(database_url=settings.database_url)
        with session_scope(database_url=settings.database_url) as session:
            info, _ = import_ledger_file(
                session, display_name, content, settings=settings.ingest
            )
    except LedgerStatsError as e:
        return _error(str(e))

    print(f"{info.id}\t{info.name}\t{info.transaction_count} transactions")
    return 0


def cmd_files(settings: AppSettings, *, remote: bool = False, as_json: bool = False) -> int:
    try:
        files = _backend(settings, remote=remote).list_files()
    except LedgerStatsError as e:
        return _error(str(e))

    if as_json:
        _print_json([f.to_dict() for f in files])
        return 0
    for f in files:
        count = "" if f.transaction_count is None else str(f.transaction_count)
        print(f"{f.id}\t{f.name}\t{f.uploaded_at.isoformat(timespec='seconds')}\t{count}")
    return 0


def cmd_delete_file(settings: AppSettings, file_id: str, *, remote: bool = False) -> int:
    try:
        deleted = _backend(settings, remote=remote).delete_file(file_id)
    except LedgerStatsError as e:
        return _error(str(e))
    if not deleted:
        return _error(f"file not found: {file_id}")

    # Drop the id from the stored selection so it does not linger.
    try:
        store = _preference_store(settings)
        prefs = store.load()
        if file_id in prefs.selected_file_ids:
            store.save(
                prefs.model_copy(
                    update={
                        "selected_file_ids": tuple(
                            f for f in prefs.selected_file_ids if f != file_id
                        )
                    }
                )
            )
    except LedgerStatsError as e:
        _logger.warning("could not update stored file selection: %s", e)

    print(f"deleted {file_id}")
    return 0


def cmd_prefs_show(settings: AppSettings) -> int:
    try:
        prefs = _preference_store(settings).load()
    except LedgerStatsError as e:
        return _error(str(e))
    _print_json(prefs.model_dump(mode="json"))
    return 0


def cmd_prefs_set(
    settings: AppSettings,
    *,
    selected_file_ids: Sequence[str] | None = None,
    excluded_categories: Sequence[str] | None = None,
    excluded_sources: Sequence[str] | None = None,
) -> int:
    """Replace the given preference fields; omitted ones keep their value."""

    store = _preference_store(settings)
    try:
        current = store.load()
        update: dict[str, Any] = {}
        if selected_file_ids is not None:
            update["selected_file_ids"] = list(selected_file_ids)
        if excluded_categories is not None:
            update["excluded_categories"] = list(excluded_categories)
        if excluded_sources is not None:
            update["excluded_sources"] = list(excluded_sources)
        prefs = UserPreferences.model_validate({**current.model_dump(), **update})
        store.save(prefs)
    except (LedgerStatsError, OSError) as e:
        return _error(str(e))
    _print_json(prefs.model_dump(mode="json"))
    return 0


def cmd_prefs_clear(settings: AppSettings) -> int:
    try:
        _preference_store(settings).clear()
    except OSError as e:
        return _error(str(e))
    print("preferences cleared")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Ingest ledger CSV exports and report spending totals. "
        "Loads DATABASE_URL and LEDGER_STATS_* from a local .env before running."
    ),
)
prefs_app = typer.Typer(no_args_is_help=True, help="Show or change stored preferences.")
app.add_typer(prefs_app, name="prefs")


def _settings(ctx: typer.Context) -> AppSettings:
    return ctx.ensure_object(dict)["settings"]


JsonOption = Annotated[bool, typer.Option("--json", help="Print JSON instead of text.")]
RemoteOption = Annotated[
    bool, typer.Option("--remote", help="Use the remote statistics service.")
]


@app.command("ingest")
def ingest_cmd(
    ctx: typer.Context,
    csv_path: Annotated[Path, typer.Argument(dir_okay=False, help="Ledger CSV export.")],
    as_json: JsonOption = False,
) -> None:
    """Parse a ledger CSV export and list its transactions."""

    raise typer.Exit(cmd_ingest(_settings(ctx), csv_path, as_json=as_json))


@app.command("report")
def report_cmd(
    ctx: typer.Context,
    csv_paths: Annotated[
        list[Path] | None,
        typer.Argument(dir_okay=False, help="Ledger CSV exports; omit to use stored data."),
    ] = None,
    file_ids: Annotated[
        list[str] | None, typer.Option("--file-id", help="Restrict to stored file ids.")
    ] = None,
    exclude_categories: Annotated[
        list[str] | None, typer.Option("--exclude-category", help="Category to leave out.")
    ] = None,
    exclude_sources: Annotated[
        list[str] | None, typer.Option("--exclude-source", help="Source to leave out.")
    ] = None,
    paid: Annotated[
        bool | None, typer.Option("--paid/--unpaid", help="Only paid or only unpaid.")
    ] = None,
    date_from: Annotated[str | None, typer.Option(help="Inclusive YYYY-MM-DD bound.")] = None,
    date_to: Annotated[str | None, typer.Option(help="Inclusive YYYY-MM-DD bound.")] = None,
    top: Annotated[int, typer.Option(help="Show only the N largest groups (0 = all).")] = 0,
    use_preferences: Annotated[
        bool, typer.Option("--prefs/--no-prefs", help="Merge stored preferences.")
    ] = True,
    remote: RemoteOption = False,
    as_json: JsonOption = False,
) -> None:
    """Payment summary with category and source totals."""

    flt = TransactionFilter(
        file_ids=frozenset(file_ids or ()),
        exclude_categories=frozenset(exclude_categories or ()),
        exclude_sources=frozenset(exclude_sources or ()),
        is_paid=paid,
        date_from=date_from,
        date_to=date_to,
    )
    raise typer.Exit(
        cmd_report(
            _settings(ctx),
            csv_paths or (),
            flt=flt,
            use_preferences=use_preferences,
            remote=remote,
            top=top,
            as_json=as_json,
        )
    )


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    csv_path: Annotated[Path, typer.Argument(dir_okay=False, help="Ledger CSV export.")],
    name: Annotated[str | None, typer.Option(help="Stored file name (defaults to the file's).")] = None,
) -> None:
    """Store a ledger CSV export in the database."""

    raise typer.Exit(cmd_import(_settings(ctx), csv_path, name=name))


@app.command("files")
def files_cmd(ctx: typer.Context, remote: RemoteOption = False, as_json: JsonOption = False) -> None:
    """List stored files, newest first."""

    raise typer.Exit(cmd_files(_settings(ctx), remote=remote, as_json=as_json))


@app.command("delete-file")
def delete_file_cmd(
    ctx: typer.Context,
    file_id: Annotated[str, typer.Argument(help="Id of the stored file.")],
    remote: RemoteOption = False,
) -> None:
    """Delete a stored file and its transactions."""

    raise typer.Exit(cmd_delete_file(_settings(ctx), file_id, remote=remote))


@prefs_app.command("show")
def prefs_show_cmd(ctx: typer.Context) -> None:
    raise typer.Exit(cmd_prefs_show(_settings(ctx)))


@prefs_app.command("set")
def prefs_set_cmd(
    ctx: typer.Context,
    select_files: Annotated[
        list[str] | None, typer.Option("--select-file", help="File id to select.")
    ] = None,
    exclude_categories: Annotated[
        list[str] | None, typer.Option("--exclude-category", help="Category to exclude.")
    ] = None,
    exclude_sources: Annotated[
        list[str] | None, typer.Option("--exclude-source", help="Source to exclude.")
    ] = None,
) -> None:
    """Replace the given preference lists; unspecified lists are kept."""

    raise typer.Exit(
        cmd_prefs_set(
            _settings(ctx),
            selected_file_ids=select_files,
            excluded_categories=exclude_categories,
            excluded_sources=exclude_sources,
        )
    )


@prefs_app.command("clear")
def prefs_clear_cmd(ctx: typer.Context) -> None:
    raise typer.Exit(cmd_prefs_clear(_settings(ctx)))


@app.callback()
def _root(
    ctx: typer.Context,
    *,
    config: Annotated[
        Path | None, typer.Option("--config", dir_okay=False, help="JSON settings file.")
    ] = None,
    database_url: Annotated[
        str | None, typer.Option(help="Override DATABASE_URL (falls back to env var).")
    ] = None,
    api_url: Annotated[
        str | None, typer.Option(help="Override LEDGER_STATS_API_URL.")
    ] = None,
    log_level: Annotated[str | None, typer.Option(help="Logging level, e.g. DEBUG.")] = None,
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables), reads settings and configures
    logging before any subcommand runs.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    try:
        settings = load_settings(config)
    except (OSError, ValueError) as e:
        # ValueError covers pydantic.ValidationError and malformed JSON.
        raise typer.Exit(_error(f"invalid configuration: {e}")) from e

    overrides: dict[str, Any] = {}
    if database_url:
        overrides["database_url"] = database_url
    if api_url:
        overrides["stats_api_url"] = api_url
    if log_level:
        overrides["log_level"] = log_level
    if overrides:
        try:
            settings = AppSettings.model_validate({**settings.model_dump(), **overrides})
        except ValidationError as e:
            raise typer.Exit(_error(f"invalid configuration: {e}")) from e

    configure_logging(settings.log_level)
    ctx.ensure_object(dict)["settings"] = settings


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    app()
