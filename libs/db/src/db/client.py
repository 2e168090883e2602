"""Engine and session helpers for the ledger database.

One engine is shared per process and bound to a single URL; tests and
short-lived tools call :func:`dispose_engine` to rebind. SQLite connections
get ``PRAGMA foreign_keys = ON`` so deleting a file removes its
transactions at the database level too.

Usage
-----
from db.client import init_schema, session_scope

init_schema(database_url=url)
with session_scope(database_url=url) as s:
    s.add(...)
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models.ledger import Base


@dataclass(slots=True)
class _Bound:
    url: str
    engine: Engine
    sessions: sessionmaker[Session]


_bound: _Bound | None = None


def _resolve_url(override: str | None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot open the ledger database")
    return url


def _sqlite_foreign_keys(dbapi_conn, _record) -> None:  # pragma: no cover - driver hook
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def _bind(url: str) -> _Bound:
    engine = create_engine(url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _sqlite_foreign_keys)
    return _Bound(
        url=url,
        engine=engine,
        sessions=sessionmaker(bind=engine, expire_on_commit=False, class_=Session),
    )


def _current(database_url: str | None) -> _Bound:
    global _bound
    url = _resolve_url(database_url)
    if _bound is None:
        _bound = _bind(url)
    elif _bound.url != url:
        raise RuntimeError(
            f"database engine is bound to a different URL; call dispose_engine() before "
            f"switching to {url!r}"
        )
    return _bound


def get_engine(*, database_url: str | None = None) -> Engine:
    """Shared engine for ``database_url`` (or ``DATABASE_URL``)."""

    return _current(database_url).engine


def dispose_engine() -> None:
    """Close pooled connections and forget the bound URL."""

    global _bound
    if _bound is not None:
        _bound.engine.dispose()
    _bound = None


def init_schema(*, database_url: str | None = None) -> Engine:
    """Create missing ledger tables; safe to call on every start."""

    engine = get_engine(database_url=database_url)
    Base.metadata.create_all(bind=engine)
    return engine


def get_session(*, database_url: str | None = None) -> Session:
    return _current(database_url).sessions()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """One unit of work: commit on success, roll back on any exception."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "dispose_engine",
    "get_engine",
    "get_session",
    "init_schema",
    "session_scope",
]
