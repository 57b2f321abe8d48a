"""Reversal/refund detection and linking.

An expense (negative amount) is paired with the first transaction of the same
account, dated within a window around it, whose amount is its exact opposite
and whose description is similar enough. Both rows are then flagged
``is_reversal`` and point at each other through ``related_transaction_id``.

Concurrency
-----------
Detection for one account runs under a per-account lock: the "re-check,
search, link" sequence is serialized so a transaction never receives two
partners from racing calls inside one process. Across processes the link
itself is a compare-and-swap: a single UPDATE touches both rows only while
both are still unflagged. When it does not apply to both rows, any half-set
flag is reverted and :class:`~statement_ingest.errors.ReversalLinkError` is
raised; the caller may retry.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from decimal import Decimal

from ledger_db.models.ledger import LedgerTransaction
from rapidfuzz.distance import Levenshtein
from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from .errors import ReversalLinkError
from .logging_setup import get_logger
from .settings import resolve_reversal_window_days, resolve_similarity_threshold

logger = get_logger("statement_ingest.reversals")

_LOCKS: dict[int, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def account_lock(account_id: int) -> threading.Lock:
    """Return the process-wide detection lock for ``account_id``."""

    with _LOCKS_GUARD:
        lock = _LOCKS.get(account_id)
        if lock is None:
            lock = _LOCKS[account_id] = threading.Lock()
        return lock


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------


def description_similarity(a: str | None, b: str | None) -> float:
    """``1 - distance / max(len)`` over lowercased, trimmed descriptions.

    ``None`` on either side scores 0.0; equal strings (including two empty
    ones) score 1.0.
    """

    if a is None or b is None:
        return 0.0
    return Levenshtein.normalized_similarity(a.lower().strip(), b.lower().strip())


def is_opposite_direction(amount: Decimal, candidate_amount: Decimal) -> bool:
    """True when ``candidate_amount`` exactly cancels a nonzero ``amount``."""

    return amount != 0 and candidate_amount == -amount


# ---------------------------------------------------------------------------
# Search and link
# ---------------------------------------------------------------------------


def find_reversal_candidates(
    session: Session, tx: LedgerTransaction, *, window_days: int
) -> list[LedgerTransaction]:
    """Unflagged opposite-amount rows of the account around ``tx``'s date.

    Narrowed to ``tx``'s card when it has one. Ordered by date then id, which
    is the order candidates are tried in.
    """

    start = tx.date - timedelta(days=window_days)
    end = tx.date + timedelta(days=window_days)
    stmt = select(LedgerTransaction).where(
        LedgerTransaction.account_id == tx.account_id,
        LedgerTransaction.id != tx.id,
        LedgerTransaction.is_reversal.is_(False),
        LedgerTransaction.date >= start,
        LedgerTransaction.date <= end,
        LedgerTransaction.amount == -tx.amount,
    )
    if tx.credit_card_id is not None:
        stmt = stmt.where(LedgerTransaction.credit_card_id == tx.credit_card_id)
    stmt = stmt.order_by(LedgerTransaction.date, LedgerTransaction.id)
    rows = session.execute(stmt).scalars().all()
    return [r for r in rows if is_opposite_direction(tx.amount, r.amount)]


def link_reversal_pair(
    session: Session, tx: LedgerTransaction, partner: LedgerTransaction
) -> None:
    """Flag both rows and point them at each other, or neither.

    Raises
    ------
    ReversalLinkError
        Fewer than two rows were still unflagged; nothing is left half-linked.
    """

    ids = [tx.id, partner.id]
    result = session.execute(
        update(LedgerTransaction)
        .where(LedgerTransaction.id.in_(ids), LedgerTransaction.is_reversal.is_(False))
        .values(
            is_reversal=True,
            related_transaction_id=case(
                (LedgerTransaction.id == tx.id, partner.id), else_=tx.id
            ),
            updated_at=func.now(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 2:
        if result.rowcount == 1:
            # The other side was already flagged elsewhere; undo ours
            session.execute(
                update(LedgerTransaction)
                .where(
                    LedgerTransaction.id.in_(ids),
                    LedgerTransaction.related_transaction_id.in_(ids),
                )
                .values(is_reversal=False, related_transaction_id=None)
                .execution_options(synchronize_session=False)
            )
        session.refresh(tx)
        session.refresh(partner)
        raise ReversalLinkError(
            tx.id, partner.id, f"expected to flag 2 rows, flagged {result.rowcount}"
        )

    session.refresh(tx)
    session.refresh(partner)
    logger.info("Linking transactions %s and %s as reversals", tx.id, partner.id)


def detect_and_link_reversal(
    session: Session,
    tx: LedgerTransaction,
    *,
    window_days: int | None = None,
    threshold: float | None = None,
) -> LedgerTransaction | None:
    """Find and link the reversal partner of a persisted expense.

    Returns the partner, or ``None`` when ``tx`` is not an unflagged expense
    or nothing similar enough was found. Calling it again on a linked row is
    a no-op.

    Parameters
    ----------
    session:
        Session holding ``tx``; ``tx`` must already be flushed (have an id).
    window_days:
        Days searched on each side of ``tx.date``; defaults to
        ``STATEMENT_INGEST_REVERSAL_WINDOW_DAYS`` or 90.
    threshold:
        Minimum :func:`description_similarity`; defaults to
        ``STATEMENT_INGEST_SIMILARITY_THRESHOLD`` or 0.6.
    """

    window = resolve_reversal_window_days(window_days)
    minimum = resolve_similarity_threshold(threshold)

    if tx.is_reversal:
        logger.debug("Transaction %s is already marked as reversal, skipping", tx.id)
        return None
    if tx.amount is None or tx.amount >= 0:
        logger.debug("Transaction %s is not an expense, skipping reversal detection", tx.id)
        return None

    with account_lock(tx.account_id):
        session.refresh(tx, attribute_names=["is_reversal", "related_transaction_id"])
        if tx.is_reversal:
            logger.debug("Transaction %s was marked as reversal while waiting for lock", tx.id)
            return None

        logger.debug(
            "Searching for reversals of transaction %s within %s days", tx.id, window
        )
        for candidate in find_reversal_candidates(session, tx, window_days=window):
            similarity = description_similarity(tx.description, candidate.description)
            logger.debug(
                "Comparing transaction %s with candidate %s: similarity = %.3f, threshold = %s",
                tx.id,
                candidate.id,
                similarity,
                minimum,
            )
            if similarity >= minimum:
                link_reversal_pair(session, tx, candidate)
                return candidate
    return None


__all__ = [
    "account_lock",
    "description_similarity",
    "is_opposite_direction",
    "find_reversal_candidates",
    "link_reversal_pair",
    "detect_and_link_reversal",
]
