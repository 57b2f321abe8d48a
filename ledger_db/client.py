"""Engine and session helpers for the ledger database.

One engine per process, bound to ``DATABASE_URL`` (or an explicit URL) on
first use. Callers own transactions through :func:`session_scope`::

    from ledger_db.client import session_scope

    with session_scope() as s:
        s.execute(...)

SQLite engines get ``PRAGMA foreign_keys = ON`` on every connection so the
``ON DELETE`` rules of the ledger schema hold there as they do on Postgres.
Set ``LEDGER_DB_ECHO=1`` to log emitted SQL.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

DATABASE_URL_ENV = "DATABASE_URL"
ECHO_ENV = "LEDGER_DB_ECHO"

_engine: Engine | None = None
_sessions: sessionmaker[Session] | None = None
_bound_url: str | None = None


def resolve_database_url(override: str | None = None) -> str:
    url = override or os.getenv(DATABASE_URL_ENV)
    if not url:
        raise RuntimeError(f"{DATABASE_URL_ENV} is not set; cannot open the ledger database")
    return url


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _record):  # pragma: no cover - driver bridge
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the process engine, creating it on first use.

    Raises ``RuntimeError`` when no URL is available, or when the engine is
    already bound to a different URL (call :func:`dispose_engine` first).
    """

    global _engine, _sessions, _bound_url
    url = resolve_database_url(database_url)
    if _engine is not None:
        if url != _bound_url:
            raise RuntimeError(
                "ledger engine already bound to another database; "
                "call dispose_engine() before switching URLs"
            )
        return _engine

    engine = create_engine(url, pool_pre_ping=True, echo=os.getenv(ECHO_ENV) == "1")
    if engine.dialect.name == "sqlite":
        _enable_sqlite_foreign_keys(engine)
    _engine = engine
    _sessions = sessionmaker(bind=engine, expire_on_commit=False)
    _bound_url = url
    return engine


def dispose_engine() -> None:
    """Close pooled connections and unbind, so another URL may be used next."""

    global _engine, _sessions, _bound_url
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessions = None
    _bound_url = None


def create_schema(*, database_url: str | None = None) -> Engine:
    """Create every ledger table that does not exist yet.

    For scratch databases and tests; deployed databases are migrated with
    Alembic (``alembic upgrade head``).
    """

    from .models.ledger import Base

    engine = get_engine(database_url=database_url)
    Base.metadata.create_all(bind=engine)
    return engine


def get_session(*, database_url: str | None = None) -> Session:
    """Open a new session on the process engine; the caller closes it."""

    get_engine(database_url=database_url)
    assert _sessions is not None
    return _sessions()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Commit on success, roll back on any exception, always close."""

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
    "DATABASE_URL_ENV",
    "resolve_database_url",
    "get_engine",
    "dispose_engine",
    "create_schema",
    "get_session",
    "session_scope",
]
