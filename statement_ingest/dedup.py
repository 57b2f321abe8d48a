"""Fingerprint gate in front of transaction persistence.

A candidate passes only when neither its raw nor its normalized fingerprint
is already stored, and neither was admitted earlier in the same batch.
Rejections are expected and never raise; the caller counts them as skipped.
"""

from __future__ import annotations

from ledger_db.models.ledger import LedgerTransaction
from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from .logging_setup import get_logger

logger = get_logger("statement_ingest.dedup")


def raw_fingerprint_exists(session: Session, fingerprint: str) -> bool:
    return bool(
        session.execute(
            select(exists().where(LedgerTransaction.raw_fingerprint == fingerprint))
        ).scalar()
    )


def normalized_fingerprint_exists(session: Session, fingerprint: str) -> bool:
    return bool(
        session.execute(
            select(exists().where(LedgerTransaction.normalized_fingerprint == fingerprint))
        ).scalar()
    )


class DeduplicationGate:
    """Batch-scoped admission check on raw and normalized fingerprints."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self._raw_seen: set[str] = set()
        self._normalized_seen: set[str] = set()
        self.rejected = 0

    def admit(self, raw_fingerprint: str, normalized_fingerprint: str | None) -> bool:
        """Return ``True`` and remember both fingerprints when the candidate is new."""

        if raw_fingerprint in self._raw_seen or raw_fingerprint_exists(
            self._session, raw_fingerprint
        ):
            logger.info("Skipping duplicate line (raw fingerprint %s)", raw_fingerprint[:12])
            self.rejected += 1
            return False
        if normalized_fingerprint is not None and (
            normalized_fingerprint in self._normalized_seen
            or normalized_fingerprint_exists(self._session, normalized_fingerprint)
        ):
            logger.info(
                "Skipping duplicate transaction (normalized fingerprint %s)",
                normalized_fingerprint[:12],
            )
            self.rejected += 1
            return False

        self._raw_seen.add(raw_fingerprint)
        if normalized_fingerprint is not None:
            self._normalized_seen.add(normalized_fingerprint)
        return True


__all__ = [
    "DeduplicationGate",
    "raw_fingerprint_exists",
    "normalized_fingerprint_exists",
]
