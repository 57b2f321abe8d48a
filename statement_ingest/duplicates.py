"""Cross-source duplicate grouping for manual review.

Fingerprints already stop one source from ingesting the same event twice.
What they cannot catch is a purchase typed in by hand and later imported
from a statement: the manual row has no normalized fingerprint, and its
description rarely matches the bank's. This module flags such pairs for a
human to resolve; nothing here merges or deletes rows.

Public surface:
- ``group_cross_source_duplicates``: pure greedy grouping over a sequence.
- ``find_duplicate_groups``: run the grouping over an account's rows.
- ``find_potential_duplicates_for_manual_entry``: imported rows that a
  manual entry about to be recorded may duplicate.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal

from ledger_db.models.ledger import SOURCE_IMPORTED, SOURCE_MANUAL, LedgerTransaction
from sqlalchemy import select
from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .models import DuplicateGroup
from .settings import resolve_duplicate_window_days

logger = get_logger("statement_ingest.duplicates")


def _mixed_sources(members: list[LedgerTransaction]) -> bool:
    sources = {m.source for m in members}
    return SOURCE_MANUAL in sources and SOURCE_IMPORTED in sources


def group_cross_source_duplicates(
    transactions: Iterable[LedgerTransaction], *, window_days: int
) -> list[DuplicateGroup]:
    """Greedy windowed grouping in iteration order.

    Each transaction joins the first open group whose first member is at most
    ``window_days`` away and has an exactly equal signed amount; otherwise it
    opens a new group. Only groups with more than one member mixing MANUAL
    and IMPORTED rows are returned, in the order they were opened.
    """

    groups: list[list[LedgerTransaction]] = []
    for tx in transactions:
        for members in groups:
            first = members[0]
            if abs((tx.date - first.date).days) <= window_days and tx.amount == first.amount:
                members.append(tx)
                break
        else:
            groups.append([tx])

    return [
        DuplicateGroup(date=m[0].date, amount=m[0].amount, transactions=tuple(m))
        for m in groups
        if len(m) > 1 and _mixed_sources(m)
    ]


def find_duplicate_groups(
    session: Session, *, account_id: int, window_days: int | None = None
) -> list[DuplicateGroup]:
    """Cross-source duplicate groups among every transaction of the account.

    Rows are visited in ``(date, id)`` order so the result is deterministic.
    """

    window = resolve_duplicate_window_days(window_days)
    logger.info("Finding all potential duplicates for account %s", account_id)
    rows = (
        session.execute(
            select(LedgerTransaction)
            .where(LedgerTransaction.account_id == account_id)
            .order_by(LedgerTransaction.date, LedgerTransaction.id)
        )
        .scalars()
        .all()
    )
    groups = group_cross_source_duplicates(rows, window_days=window)
    logger.info("Found %d duplicate groups for account %s", len(groups), account_id)
    return groups


def find_potential_duplicates_for_manual_entry(
    session: Session,
    *,
    account_id: int,
    date: date,
    amount: Decimal,
    window_days: int | None = None,
) -> list[LedgerTransaction]:
    """Imported rows within the window carrying exactly ``amount``."""

    window = resolve_duplicate_window_days(window_days)
    start = date - timedelta(days=window)
    end = date + timedelta(days=window)
    logger.debug(
        "Searching for potential duplicates: account=%s date=%s amount=%s window=[%s, %s]",
        account_id,
        date,
        amount,
        start,
        end,
    )
    rows = (
        session.execute(
            select(LedgerTransaction)
            .where(
                LedgerTransaction.account_id == account_id,
                LedgerTransaction.source == SOURCE_IMPORTED,
                LedgerTransaction.date >= start,
                LedgerTransaction.date <= end,
                LedgerTransaction.amount == amount,
            )
            .order_by(LedgerTransaction.date, LedgerTransaction.id)
        )
        .scalars()
        .all()
    )
    return list(rows)


__all__ = [
    "group_cross_source_duplicates",
    "find_duplicate_groups",
    "find_potential_duplicates_for_manual_entry",
]
