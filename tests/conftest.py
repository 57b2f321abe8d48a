"""Pytest configuration for test isolation.

The engine in ``ledger_db.client`` is a process-wide singleton bound to the
first URL it sees, and ``statement_ingest`` reads its tunables and log level
from ``STATEMENT_INGEST_*`` environment variables. To keep tests hermetic we
clear those variables, dispose the shared engine and detach logging handlers
around every test, and hand each test its own file-backed SQLite database.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from ledger_db.client import dispose_engine, get_session
from ledger_db.models.ledger import Account
from sqlalchemy.orm import Session
from statement_ingest.logging_setup import reset_logging

from tests.helpers.db import bootstrap_sqlite_db, seed_account

_ENV_VARS = (
    "DATABASE_URL",
    "STATEMENT_INGEST_LOG_LEVEL",
    "STATEMENT_INGEST_REVERSAL_WINDOW_DAYS",
    "STATEMENT_INGEST_SIMILARITY_THRESHOLD",
    "STATEMENT_INGEST_DUPLICATE_WINDOW_DAYS",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Start every test without inherited configuration or a bound engine."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    dispose_engine()
    yield
    dispose_engine()
    reset_logging()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "ledger.sqlite3")


@pytest.fixture
def session(db_url: str) -> Iterator[Session]:
    s = get_session(database_url=db_url)
    try:
        yield s
    finally:
        s.rollback()
        s.close()


@pytest.fixture
def account(session: Session) -> Account:
    return seed_account(session)
