# ruff: noqa: I001
"""Reversal/refund links on ledger transactions.

Adds the ``is_reversal`` flag and the self-referencing
``related_transaction_id`` column. A flagged row must carry a partner, and a
row may not point at itself.

Revision ID: 0002_ledger_reversal_links
Revises: 0001_ledger_core
Create Date: 2026-09-21
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0002_ledger_reversal_links"
down_revision: str | None = "0001_ledger_core"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    with op.batch_alter_table("ledger_transactions") as batch:
        batch.add_column(
            sa.Column("is_reversal", sa.Boolean(), nullable=False, server_default=sa.false())
        )
        batch.add_column(sa.Column("related_transaction_id", sa.BigInteger(), nullable=True))
        batch.create_foreign_key(
            "fk_ledger_tx_related",
            "ledger_transactions",
            ["related_transaction_id"],
            ["id"],
            ondelete="SET NULL",
        )
        batch.create_check_constraint(
            "ck_ledger_tx_reversal_related",
            "NOT is_reversal OR related_transaction_id IS NOT NULL",
        )
        batch.create_check_constraint(
            "ck_ledger_tx_related_distinct",
            "related_transaction_id IS NULL OR related_transaction_id <> id",
        )


def downgrade() -> None:
    with op.batch_alter_table("ledger_transactions") as batch:
        batch.drop_constraint("ck_ledger_tx_related_distinct", type_="check")
        batch.drop_constraint("ck_ledger_tx_reversal_related", type_="check")
        batch.drop_constraint("fk_ledger_tx_related", type_="foreignkey")
        batch.drop_column("related_transaction_id")
        batch.drop_column("is_reversal")
