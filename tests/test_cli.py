from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from ledger_db.client import session_scope
from ledger_db.models.ledger import (
    IMPORT_STATUS_FAILED,
    SOURCE_MANUAL,
    Account,
    ImportRecord,
    LedgerTransaction,
)
from sqlalchemy import func, select
from statement_ingest.cli import (
    cmd_find_duplicates,
    cmd_import_card_text,
    cmd_import_csv,
    cmd_list_imports,
    cmd_rollback_import,
)

from tests.helpers.db import add_transaction, seed_account


@pytest.fixture
def account_id(db_url: str) -> int:
    with session_scope(database_url=db_url) as s:
        return seed_account(s).id


def _write(tmp_path: Path, name: str, content: str | bytes) -> Path:
    path = tmp_path / name
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


def _count(db_url: str, model) -> int:
    with session_scope(database_url=db_url) as s:
        return s.execute(select(func.count()).select_from(model)).scalar_one()


def test_import_csv_prints_summary(tmp_path, db_url, account_id, capsys):
    path = _write(tmp_path, "extrato.csv", "05/03/2024;NETFLIX.COM;-39,90;\n05/03/2024;X\n")

    assert cmd_import_csv(str(path), account_id=account_id, database_url=db_url) == 0

    out = capsys.readouterr().out
    assert out.strip().endswith("1 imported, 1 skipped of 2 rows; 0 reversals linked")
    assert _count(db_url, LedgerTransaction) == 1


def test_missing_file(tmp_path, db_url, account_id, capsys):
    rc = cmd_import_csv(str(tmp_path / "nope.csv"), account_id=account_id, database_url=db_url)
    assert rc == 1
    assert "cannot read" in capsys.readouterr().err


def test_rejected_upload_is_not_recorded(tmp_path, db_url, account_id, capsys):
    path = _write(tmp_path, "extrato.csv", b"")

    assert cmd_import_csv(str(path), account_id=account_id, database_url=db_url) == 1
    assert "import rejected" in capsys.readouterr().err
    assert _count(db_url, ImportRecord) == 0


def test_unknown_account(tmp_path, db_url, capsys):
    path = _write(tmp_path, "extrato.csv", "05/03/2024;NETFLIX.COM;-39,90;\n")

    assert cmd_import_csv(str(path), account_id=404, database_url=db_url) == 1
    assert "account 404 not found" in capsys.readouterr().err


def test_pdf_without_extractor_is_recorded_as_failed(tmp_path, db_url, account_id, capsys):
    path = _write(tmp_path, "fatura.pdf", b"%PDF-1.7")

    assert cmd_import_card_text(str(path), account_id=account_id, database_url=db_url) == 1
    assert "import failed" in capsys.readouterr().err

    with session_scope(database_url=db_url) as s:
        record = s.execute(select(ImportRecord)).scalar_one()
        assert record.status == IMPORT_STATUS_FAILED
        assert "no text extractor" in record.error_message
    assert _count(db_url, LedgerTransaction) == 0


def test_missing_database_url(tmp_path, capsys):
    path = _write(tmp_path, "extrato.csv", "05/03/2024;NETFLIX.COM;-39,90;\n")

    assert cmd_import_csv(str(path), account_id=1) == 1
    assert "DATABASE_URL is not set" in capsys.readouterr().err


def test_rollback_and_history(tmp_path, db_url, account_id, capsys):
    path = _write(tmp_path, "extrato.csv", "05/03/2024;NETFLIX.COM;-39,90;\n")
    cmd_import_csv(str(path), account_id=account_id, database_url=db_url)
    capsys.readouterr()
    with session_scope(database_url=db_url) as s:
        import_id = s.execute(select(ImportRecord.id)).scalar_one()

    assert cmd_rollback_import(import_id, account_id=account_id, database_url=db_url) == 0
    assert capsys.readouterr().out == f"import {import_id}: 1 transactions deleted\n"

    assert cmd_list_imports(account_id=account_id, database_url=db_url) == 0
    assert capsys.readouterr().out == f"{import_id}\tROLLED_BACK\tDELIMITED\t1/1\textrato.csv\n"

    assert cmd_rollback_import(9999, account_id=account_id, database_url=db_url) == 1
    assert "import 9999 not found" in capsys.readouterr().err


def test_find_duplicates_output(db_url, account_id, capsys):
    assert cmd_find_duplicates(account_id=account_id, database_url=db_url) == 0
    assert capsys.readouterr().out == "No cross-source duplicates found.\n"

    with session_scope(database_url=db_url) as s:
        account = s.get(Account, account_id)
        manual = add_transaction(
            s,
            account,
            tx_date=date(2024, 3, 1),
            description="Mercado",
            amount="-120.00",
            source=SOURCE_MANUAL,
        )
        imported = add_transaction(
            s, account, tx_date=date(2024, 3, 2), description="MERCADO CENTRAL", amount="-120.00"
        )
        ids = (manual.id, imported.id)

    assert cmd_find_duplicates(account_id=account_id, database_url=db_url) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "2024-03-01|-120.00"
    assert [line.split("\t")[1] for line in lines[1:]] == [str(i) for i in ids]
    assert lines[1].split("\t")[3:] == ["MANUAL", "-120.00", "Mercado"]

    assert cmd_find_duplicates(account_id=account_id, window_days=0, database_url=db_url) == 0
    assert capsys.readouterr().out == "No cross-source duplicates found.\n"
