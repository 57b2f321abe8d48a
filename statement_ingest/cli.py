# ruff: noqa: I001
"""CLI for the ``statement_ingest`` package.

This module exposes callable command handlers (``cmd_import_csv``,
``cmd_import_card_text``, ``cmd_rollback_import``, ``cmd_find_duplicates``,
``cmd_list_imports``) and a Typer-based console interface. ``DATABASE_URL``
and the ``STATEMENT_INGEST_*`` tunables are loaded from a local ``.env`` using
``python-dotenv`` before delegating to command logic. Business logic lives in
``statement_ingest.api``.

Handlers return a process exit code and print errors to stderr; each runs in
its own ``session_scope`` so a failed import leaves nothing behind except the
FAILED row in the import history.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .logging_setup import configure_logging

if TYPE_CHECKING:
    from .models import ImportResult


def _record_failure(
    *, account_id: int, file_name: str, fmt: str, message: str, database_url: str | None
) -> None:
    from ledger_db.client import session_scope
    from sqlalchemy.exc import SQLAlchemyError

    from .api import record_failed_import

    try:
        with session_scope(database_url=database_url) as session:
            record_failed_import(
                session,
                account_id=account_id,
                file_name=file_name,
                fmt=fmt,
                error_message=message,
            )
    except SQLAlchemyError as e:
        print(f"Error: could not record failed import: {e}", file=sys.stderr)


def _run_import(
    file_path: str,
    *,
    account_id: int,
    fmt: str,
    database_url: str | None,
    importer: Callable[..., ImportResult],
) -> int:
    from ledger_db.client import session_scope
    from sqlalchemy.exc import SQLAlchemyError

    from .errors import AccountNotFoundError, ImportRejectedError, IngestError
    from .ingest.utils import read_upload

    path = Path(file_path)
    try:
        data = read_upload(path)
    except OSError as e:
        print(f"Error: cannot read {path}: {e}", file=sys.stderr)
        return 1

    try:
        with session_scope(database_url=database_url) as session:
            result = importer(
                session, account_id=account_id, file_name=path.name, data=data
            )
            summary = (
                f"import {result.import_id}: {result.imported_rows} imported, "
                f"{result.skipped_rows} skipped of {result.total_rows} rows; "
                f"{result.reversals_linked} reversals linked"
            )
            warning = result.error_message
    except (ImportRejectedError, AccountNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (IngestError, SQLAlchemyError) as e:
        print(f"Error: import failed: {e}", file=sys.stderr)
        _record_failure(
            account_id=account_id,
            file_name=path.name,
            fmt=fmt,
            message=str(e),
            database_url=database_url,
        )
        return 1
    except RuntimeError as e:  # DATABASE_URL missing
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(summary)
    if warning:
        print(f"Warning: {warning}", file=sys.stderr)
    return 0


def cmd_import_csv(
    file_path: str, *, account_id: int, database_url: str | None = None
) -> int:
    """Import a semicolon-delimited bank export and print a one-line summary."""

    from ledger_db.models.ledger import IMPORT_FORMAT_DELIMITED

    from .api import import_delimited_statement

    def _importer(session, *, account_id, file_name, data):
        return import_delimited_statement(
            session, account_id=account_id, file_name=file_name, content=data
        )

    return _run_import(
        file_path,
        account_id=account_id,
        fmt=IMPORT_FORMAT_DELIMITED,
        database_url=database_url,
        importer=_importer,
    )


def cmd_import_card_text(
    file_path: str, *, account_id: int, database_url: str | None = None
) -> int:
    """Import text already extracted from a card statement PDF.

    The PDF itself cannot be read here: no text extractor is wired into the
    CLI, so a ``.pdf`` file fails with a recorded text-extraction error.
    """

    from ledger_db.models.ledger import IMPORT_FORMAT_CARD_STATEMENT

    from .api import import_card_statement

    def _importer(session, *, account_id, file_name, data):
        return import_card_statement(
            session, account_id=account_id, file_name=file_name, document=data
        )

    return _run_import(
        file_path,
        account_id=account_id,
        fmt=IMPORT_FORMAT_CARD_STATEMENT,
        database_url=database_url,
        importer=_importer,
    )


def cmd_rollback_import(
    import_id: int, *, account_id: int, database_url: str | None = None
) -> int:
    """Delete the transactions of an import and mark it ROLLED_BACK."""

    from ledger_db.client import session_scope
    from sqlalchemy.exc import SQLAlchemyError

    from .api import rollback_import
    from .errors import ImportNotFoundError

    try:
        with session_scope(database_url=database_url) as session:
            deleted = rollback_import(session, import_id=import_id, account_id=account_id)
    except (ImportNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (SQLAlchemyError, RuntimeError) as e:
        print(f"Error: rollback failed: {e}", file=sys.stderr)
        return 1

    print(f"import {import_id}: {deleted} transactions deleted")
    return 0


def cmd_find_duplicates(
    *, account_id: int, window_days: int | None = None, database_url: str | None = None
) -> int:
    """Print cross-source duplicate groups, one header line per group.

    Output format::

        <date>|<amount>
            <id> <date> <source> <amount> <description>   (tab-separated)
    """

    from ledger_db.client import session_scope
    from sqlalchemy.exc import SQLAlchemyError

    from .api import find_duplicate_groups

    try:
        with session_scope(database_url=database_url) as session:
            groups = find_duplicate_groups(
                session, account_id=account_id, window_days=window_days
            )
            lines: list[str] = []
            for group in groups:
                lines.append(group.key)
                for tx in group.transactions:
                    lines.append(
                        f"\t{tx.id}\t{tx.date.isoformat()}\t{tx.source}\t{tx.amount}\t{tx.description}"
                    )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (SQLAlchemyError, RuntimeError) as e:
        print(f"Error: duplicate search failed: {e}", file=sys.stderr)
        return 1

    for line in lines:
        print(line)
    if not groups:
        print("No cross-source duplicates found.")
    return 0


def cmd_list_imports(*, account_id: int, database_url: str | None = None) -> int:
    """Print the import history of an account, newest first."""

    from ledger_db.client import session_scope
    from sqlalchemy.exc import SQLAlchemyError

    from .api import list_imports

    try:
        with session_scope(database_url=database_url) as session:
            rows = [
                f"{r.id}\t{r.status}\t{r.format}\t{r.imported_rows}/{r.total_rows}\t{r.file_name}"
                for r in list_imports(session, account_id=account_id)
            ]
    except (SQLAlchemyError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for row in rows:
        print(row)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank exports and card statements into the ledger, detect "
        "reversals and report cross-source duplicates. Loads DATABASE_URL from "
        "a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer will inspect these when used as default values below.
FILE_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--file",
    help="Path to the file to import",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports unreadable files itself
)
ACCOUNT_ID_OPTION: OptionInfo = typer.Option(..., "--account-id", help="Ledger account id")
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    None, help="Override DATABASE_URL (falls back to env var)."
)


def _exit(code: int) -> None:
    if code != 0:
        raise typer.Exit(code)


@app.command("import-csv")
def import_csv_cmd(
    file_path: Path = FILE_PATH_OPTION,
    account_id: int = ACCOUNT_ID_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Import a semicolon-delimited bank export."""

    _exit(cmd_import_csv(str(file_path), account_id=account_id, database_url=database_url))


@app.command("import-card-text")
def import_card_text_cmd(
    file_path: Path = FILE_PATH_OPTION,
    account_id: int = ACCOUNT_ID_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Import text extracted from a multi-card credit-card statement."""

    _exit(
        cmd_import_card_text(str(file_path), account_id=account_id, database_url=database_url)
    )


@app.command("rollback-import")
def rollback_import_cmd(
    import_id: int = typer.Option(..., "--import-id", help="Import history id"),
    account_id: int = ACCOUNT_ID_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Undo an import."""

    _exit(cmd_rollback_import(import_id, account_id=account_id, database_url=database_url))


@app.command("find-duplicates")
def find_duplicates_cmd(
    account_id: int = ACCOUNT_ID_OPTION,
    window_days: int | None = typer.Option(
        None,
        "--window-days",
        help="Days tolerated between group members (default: env or 3).",
    ),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """List groups of manual and imported rows that look like the same event."""

    _exit(
        cmd_find_duplicates(
            account_id=account_id, window_days=window_days, database_url=database_url
        )
    )


@app.command("list-imports")
def list_imports_cmd(
    account_id: int = ACCOUNT_ID_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Show the import history of an account."""

    _exit(cmd_list_imports(account_id=account_id, database_url=database_url))


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m statement_ingest.cli`
    app()
