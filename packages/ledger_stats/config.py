"""Configuration for ``ledger_stats``.

Settings come from three layers, later ones winning:

1. model defaults below;
2. an optional JSON file (``ledger_stats.json`` in the working directory, or
   an explicit path);
3. environment variables (``DATABASE_URL``, ``LEDGER_STATS_*``).

The CLI loads a local ``.env`` with python-dotenv before calling
:func:`load_settings`, so values placed there behave like real environment
variables without overriding ones already set.
"""

from __future__ import annotations

import json
import os
from os import PathLike
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .logging_setup import get_logger

DEFAULT_CONFIG_FILE = "ledger_stats.json"

_logger = get_logger("ledger_stats.config")


class LedgerColumns(BaseModel):
    """Header names expected in the ledger export (exact, case-sensitive)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    category: str = "Rodzaj"
    source: str = "Skąd"
    description: str = "Co"
    amount: str = "Za ile"
    paid: str = "Opłacone?"
    cash: str = "Gotówka"
    date: str = "Data"


class IngestSettings(BaseModel):
    """How a ledger export is read.

    ``skip_rows`` lines of metadata preamble are discarded before the header;
    ``fallback_encoding`` is tried when the bytes are not valid UTF-8 (older
    exports from Polish Windows installations).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    skip_rows: int = Field(default=3, ge=0)
    columns: LedgerColumns = LedgerColumns()
    encoding: str = "utf-8-sig"
    fallback_encoding: str | None = "cp1250"
    unknown_source_label: str = "Unknown"


class AppSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    database_url: str | None = None
    stats_api_url: str | None = None
    preferences_path: Path = Path(".ledger_stats") / "preferences.json"
    request_timeout: float = Field(default=10.0, gt=0)
    log_level: str = "INFO"
    ingest: IngestSettings = IngestSettings()


# Environment variable -> dotted settings key
_ENV_OVERRIDES: dict[str, str] = {
    "DATABASE_URL": "database_url",
    "LEDGER_STATS_API_URL": "stats_api_url",
    "LEDGER_STATS_PREFS_PATH": "preferences_path",
    "LEDGER_STATS_TIMEOUT": "request_timeout",
    "LEDGER_STATS_LOG_LEVEL": "log_level",
    "LEDGER_STATS_SKIP_ROWS": "ingest.skip_rows",
}


def _set_dotted(target: dict[str, Any], dotted: str, value: Any) -> None:
    head, _, rest = dotted.partition(".")
    if not rest:
        target[head] = value
        return
    child = target.get(head)
    if not isinstance(child, dict):
        child = {}
        target[head] = child
    _set_dotted(child, rest, value)


def _read_config_file(path: Path) -> dict[str, Any]:
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"config file {path} must contain a JSON object")
    return data


def load_settings(config_path: str | PathLike[str] | None = None) -> AppSettings:
    """Build :class:`AppSettings` from file and environment.

    An explicit ``config_path`` must exist; the default file is optional.
    Invalid values raise ``pydantic.ValidationError``.
    """

    data: dict[str, Any] = {}
    if config_path is not None:
        data = _read_config_file(Path(config_path))
    else:
        default = Path.cwd() / DEFAULT_CONFIG_FILE
        if default.is_file():
            data = _read_config_file(default)

    for env_name, dotted in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is not None and raw.strip():
            _set_dotted(data, dotted, raw.strip())

    settings = AppSettings.model_validate(data)
    _logger.debug(
        "settings loaded (database=%s, api=%s, skip_rows=%d)",
        "set" if settings.database_url else "unset",
        settings.stats_api_url or "unset",
        settings.ingest.skip_rows,
    )
    return settings


__all__ = [
    "AppSettings",
    "DEFAULT_CONFIG_FILE",
    "IngestSettings",
    "LedgerColumns",
    "load_settings",
]
