"""Alembic environment for the ledger schema.

The target database comes from ``DATABASE_URL`` (a repository ``.env`` is
honored) or, failing that, ``sqlalchemy.url`` in ``alembic.ini``. SQLite
targets use batch mode so column changes work despite its limited ALTER.
"""

from __future__ import annotations

import logging
import os
from logging.config import fileConfig

from alembic import context
from dotenv import find_dotenv, load_dotenv
from sqlalchemy import engine_from_config, pool

from ledger_db import metadata as target_metadata
from ledger_db.client import DATABASE_URL_ENV

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

# Walk up from CWD so both `alembic` at the repo root and inside ledger_db/ work
load_dotenv(find_dotenv(usecwd=True), override=False)

# Environment wins over the ini file
db_url = os.getenv(DATABASE_URL_ENV) or config.get_main_option("sqlalchemy.url")
if not db_url:
    raise RuntimeError(
        "No database configured: set DATABASE_URL or 'sqlalchemy.url' in alembic.ini"
    )
config.set_main_option("sqlalchemy.url", db_url)


def _batch_mode(url_or_dialect: str) -> bool:
    return url_or_dialect.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it."""

    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=_batch_mode(db_url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section) or {},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        logger.info("Migrating ledger schema on %s", connection.dialect.name)
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=_batch_mode(connection.dialect.name),
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
