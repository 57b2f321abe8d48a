from __future__ import annotations

import textwrap
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from ledger_db.client import session_scope
from ledger_db.models.ledger import LedgerTransaction
from sqlalchemy import select
from statement_ingest.api import record_manual_transaction
from statement_ingest.cli import app
from typer.testing import CliRunner

from tests.helpers.db import bootstrap_sqlite_db, seed_account

runner = CliRunner()


def _invoke(*args: str):
    return runner.invoke(app, list(args))


def test_e2e_import_reconcile_and_rollback(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    # -------------------------
    # DB bootstrap + .env
    # -------------------------
    db_url = bootstrap_sqlite_db(tmp_path / "ledger-e2e.db")
    (tmp_path / ".env").write_text(f"DATABASE_URL={db_url}\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    with session_scope(database_url=db_url) as s:
        account_id = seed_account(s).id
        record_manual_transaction(
            s,
            account_id=account_id,
            date=date(2024, 11, 12),
            description="Netflix",
            amount=Decimal("-39.90"),
        )
    acct = str(account_id)

    # -------------------------
    # Bank export with a refund
    # -------------------------
    csv_path = tmp_path / "extrato.csv"
    csv_path.write_text(
        textwrap.dedent(
            """\
            Data;Historico;Valor;Saldo
            01/03/2024;LOJA AMERICANAS;-50,00;
            11/03/2024;LOJA AMERICANAS EST;50,00;
            """
        ),
        encoding="utf-8",
    )
    first = _invoke("import-csv", "--file", str(csv_path), "--account-id", acct)
    assert first.exit_code == 0, first.output
    assert "2 imported, 0 skipped of 2 rows; 1 reversals linked" in first.stdout

    again = _invoke("import-csv", "--file", str(csv_path), "--account-id", acct)
    assert again.exit_code == 0, again.output
    assert "0 imported, 2 skipped of 2 rows; 0 reversals linked" in again.stdout

    # -------------------------
    # Card statement text
    # -------------------------
    card_path = tmp_path / "fatura.txt"
    card_path.write_text(
        "1234 - JOHN SMITH\n12/11/2024 NETFLIX.COM 39,90 7,50\n", encoding="utf-8"
    )
    card = _invoke("import-card-text", "--file", str(card_path), "--account-id", acct)
    assert card.exit_code == 0, card.output
    assert "1 imported, 0 skipped of 1 rows" in card.stdout

    dupes = _invoke("find-duplicates", "--account-id", acct)
    assert dupes.exit_code == 0, dupes.output
    lines = dupes.stdout.splitlines()
    assert lines[0] == "2024-11-12|-39.90"
    assert [line.split("\t")[3] for line in lines[1:3]] == ["MANUAL", "IMPORTED"]

    # -------------------------
    # Failures and history
    # -------------------------
    pdf_path = tmp_path / "fatura.pdf"
    pdf_path.write_bytes(b"%PDF-1.7")
    failed = _invoke("import-card-text", "--file", str(pdf_path), "--account-id", acct)
    assert failed.exit_code == 1

    empty_path = tmp_path / "vazio.csv"
    empty_path.write_bytes(b"")
    assert _invoke("import-csv", "--file", str(empty_path), "--account-id", acct).exit_code == 1

    history = _invoke("list-imports", "--account-id", acct)
    assert history.exit_code == 0, history.output
    rows = [line.split("\t") for line in history.stdout.splitlines()]
    assert [(r[1], r[4]) for r in rows] == [
        ("FAILED", "fatura.pdf"),
        ("SUCCESS", "fatura.txt"),
        ("SUCCESS", "extrato.csv"),
        ("SUCCESS", "extrato.csv"),
    ]

    # -------------------------
    # Rollback of the first import
    # -------------------------
    first_import_id = rows[-1][0]
    undo = _invoke("rollback-import", "--import-id", first_import_id, "--account-id", acct)
    assert undo.exit_code == 0, undo.output
    assert f"import {first_import_id}: 2 transactions deleted" in undo.stdout

    with session_scope(database_url=db_url) as s:
        left = s.execute(select(LedgerTransaction.description)).scalars().all()
    assert sorted(left) == ["NETFLIX.COM", "Netflix"]
