"""One import batch: mapping resolution, fingerprint gate, persistence, reversals.

An :class:`ImportBatch` is created per uploaded file. Candidates are offered
one at a time through :meth:`ImportBatch.add`; nothing is written until
:meth:`ImportBatch.finish`, which adds the batch's new mappings and admitted
transactions to the session in one flush and then runs reversal detection on
each persisted expense. The caller owns the surrounding database transaction,
so a failure anywhere leaves neither mappings nor transactions behind.
"""

from __future__ import annotations

from decimal import Decimal

from ledger_db.models.ledger import (
    SOURCE_IMPORTED,
    TYPE_INSTALLMENT,
    TYPE_ONE_TIME,
    CreditCard,
    LedgerTransaction,
)
from sqlalchemy.orm import Session

from ..dedup import DeduplicationGate
from ..errors import ReversalLinkError
from ..fingerprints import compute_normalized_fingerprint, compute_raw_fingerprint
from ..logging_setup import get_logger
from ..mappings import MappingResolver
from ..models import CandidateTransaction
from ..normalizers import normalize_description
from ..reversals import detect_and_link_reversal

logger = get_logger("statement_ingest.ingest.pipeline")


class ImportBatch:
    """Accumulates the admitted rows of one import and its counters."""

    def __init__(
        self,
        session: Session,
        *,
        account_id: int,
        import_id: int | None = None,
        reversal_window_days: int | None = None,
        similarity_threshold: float | None = None,
    ) -> None:
        self.session = session
        self.account_id = account_id
        self.import_id = import_id
        self.resolver = MappingResolver(session, account_id)
        self.gate = DeduplicationGate(session)
        self.total_rows = 0
        self.skipped_rows = 0
        self.transactions: list[LedgerTransaction] = []
        self.reversals_linked = 0
        # Retryable; reported to the caller through the import result
        self.link_failures: list[ReversalLinkError] = []
        self._reversal_window_days = reversal_window_days
        self._similarity_threshold = similarity_threshold

    @property
    def imported_rows(self) -> int:
        return len(self.transactions)

    def skip_unparsed(self, count: int) -> None:
        """Count data rows the parser could not read."""

        self.total_rows += count
        self.skipped_rows += count

    def add(
        self,
        candidate: CandidateTransaction,
        *,
        amount: Decimal | None = None,
        card: CreditCard | None = None,
    ) -> LedgerTransaction | None:
        """Offer one candidate; return the pending row or ``None`` when gated out.

        ``amount`` overrides the candidate's printed amount with the signed
        ledger amount (card statements print charges as positive values).
        """

        self.total_rows += 1
        signed = candidate.amount if amount is None else amount
        raw_fp = compute_raw_fingerprint(candidate.raw_line)
        normalized_fp = compute_normalized_fingerprint(
            candidate.date,
            candidate.description,
            signed,
            self.account_id,
        )
        if not self.gate.admit(raw_fp, normalized_fp):
            self.skipped_rows += 1
            return None

        mapping = self.resolver.resolve(candidate.description)
        tx = LedgerTransaction(
            account_id=self.account_id,
            date=candidate.date,
            description=candidate.description,
            normalized_description=normalize_description(candidate.description),
            simplified_description=mapping.simplified_description,
            category_id=mapping.category_id,
            amount=signed,
            foreign_amount=candidate.foreign_amount,
            credit_card_id=card.id if card is not None else None,
            source=SOURCE_IMPORTED,
            transaction_type=TYPE_INSTALLMENT if candidate.is_installment else TYPE_ONE_TIME,
            current_installment=candidate.current_installment,
            total_installments=candidate.total_installments,
            raw_fingerprint=raw_fp,
            normalized_fingerprint=normalized_fp,
            is_reversal=False,
            import_id=self.import_id,
        )
        if card is not None and card.holder is not None:
            tx.responsibles = [card.holder]
        self.transactions.append(tx)
        return tx

    def finish(self) -> list[LedgerTransaction]:
        """Persist mappings and rows in one flush, then link reversals."""

        self.resolver.flush()
        if self.transactions:
            self.session.add_all(self.transactions)
        self.session.flush()
        logger.info(
            "Persisted %d of %d rows for account %s (%d skipped)",
            self.imported_rows,
            self.total_rows,
            self.account_id,
            self.skipped_rows,
        )

        expenses = [t for t in self.transactions if t.amount < 0]
        logger.info("Running reversal detection on %d imported expenses", len(expenses))
        for tx in expenses:
            try:
                partner = detect_and_link_reversal(
                    self.session,
                    tx,
                    window_days=self._reversal_window_days,
                    threshold=self._similarity_threshold,
                )
            except ReversalLinkError as exc:
                logger.warning("%s", exc)
                self.link_failures.append(exc)
                continue
            if partner is not None:
                self.reversals_linked += 1
        return self.transactions


__all__ = ["ImportBatch"]
