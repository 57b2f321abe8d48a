# ruff: noqa: I001
"""Ledger core tables: accounts, users, categories, cards, mappings, imports, transactions.

Revision ID: 0001_ledger_core
Revises: None
Create Date: 2026-09-14
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    op.create_table(
        "ledger_accounts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "ledger_users",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["ledger_accounts.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "ledger_categories",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["ledger_accounts.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("account_id", "name", name="uq_ledger_categories_account_name"),
    )

    op.create_table(
        "ledger_credit_cards",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("holder_id", sa.BigInteger(), nullable=True),
        sa.Column("nickname", sa.Text(), nullable=False),
        sa.Column("last_four_digits", sa.CHAR(4), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["ledger_accounts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["holder_id"], ["ledger_users.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "ix_ledger_cards_account_digits",
        "ledger_credit_cards",
        ["account_id", "last_four_digits"],
        unique=False,
    )

    op.create_table(
        "ledger_description_mappings",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("original_description", sa.Text(), nullable=False),
        sa.Column("normalized_description", sa.Text(), nullable=False),
        sa.Column("simplified_description", sa.Text(), nullable=True),
        sa.Column("category_id", sa.BigInteger(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["account_id"], ["ledger_accounts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["ledger_categories.id"], ondelete="SET NULL"),
        sa.UniqueConstraint(
            "account_id",
            "normalized_description",
            name="uq_ledger_mappings_account_normalized",
        ),
    )

    op.create_table(
        "ledger_imports",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column("format", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("total_rows", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("imported_rows", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("skipped_rows", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("error_message", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["account_id"], ["ledger_accounts.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "format in ('DELIMITED','CARD_STATEMENT')", name="ck_ledger_imports_format"
        ),
        sa.CheckConstraint(
            "status in ('SUCCESS','FAILED','ROLLED_BACK')", name="ck_ledger_imports_status"
        ),
    )

    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("normalized_description", sa.Text(), nullable=False),
        sa.Column("simplified_description", sa.Text(), nullable=True),
        sa.Column("category_id", sa.BigInteger(), nullable=True),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("foreign_amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("credit_card_id", sa.BigInteger(), nullable=True),
        sa.Column("source", sa.Text(), nullable=False, server_default=sa.text("'MANUAL'")),
        sa.Column(
            "transaction_type", sa.Text(), nullable=False, server_default=sa.text("'ONE_TIME'")
        ),
        sa.Column("current_installment", sa.Integer(), nullable=True),
        sa.Column("total_installments", sa.Integer(), nullable=True),
        sa.Column("raw_fingerprint", sa.CHAR(64), nullable=False),
        sa.Column("normalized_fingerprint", sa.CHAR(64), nullable=True),
        sa.Column("import_id", sa.BigInteger(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["account_id"], ["ledger_accounts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["ledger_categories.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["credit_card_id"], ["ledger_credit_cards.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(["import_id"], ["ledger_imports.id"], ondelete="SET NULL"),
        sa.CheckConstraint("source in ('MANUAL','IMPORTED')", name="ck_ledger_tx_source"),
        sa.CheckConstraint(
            "transaction_type in ('ONE_TIME','INSTALLMENT')", name="ck_ledger_tx_type"
        ),
    )

    op.create_index(
        "uq_ledger_tx_raw_fingerprint", "ledger_transactions", ["raw_fingerprint"], unique=True
    )
    op.create_index(
        "uq_ledger_tx_normalized_fingerprint",
        "ledger_transactions",
        ["normalized_fingerprint"],
        unique=True,
    )
    op.create_index(
        "ix_ledger_tx_account_date", "ledger_transactions", ["account_id", "date"], unique=False
    )
    op.create_index(
        "ix_ledger_tx_account_normalized_description",
        "ledger_transactions",
        ["account_id", "normalized_description"],
        unique=False,
    )

    op.create_table(
        "ledger_transaction_responsibles",
        sa.Column("transaction_id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), primary_key=True),
        sa.ForeignKeyConstraint(
            ["transaction_id"], ["ledger_transactions.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["user_id"], ["ledger_users.id"], ondelete="CASCADE"),
    )


def downgrade() -> None:
    op.drop_table("ledger_transaction_responsibles")
    op.drop_index("ix_ledger_tx_account_normalized_description", table_name="ledger_transactions")
    op.drop_index("ix_ledger_tx_account_date", table_name="ledger_transactions")
    op.drop_index("uq_ledger_tx_normalized_fingerprint", table_name="ledger_transactions")
    op.drop_index("uq_ledger_tx_raw_fingerprint", table_name="ledger_transactions")
    op.drop_table("ledger_transactions")
    op.drop_table("ledger_imports")
    op.drop_table("ledger_description_mappings")
    op.drop_index("ix_ledger_cards_account_digits", table_name="ledger_credit_cards")
    op.drop_table("ledger_credit_cards")
    op.drop_table("ledger_categories")
    op.drop_table("ledger_users")
    op.drop_table("ledger_accounts")
