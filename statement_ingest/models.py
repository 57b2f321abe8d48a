"""Data models for ``statement_ingest``.

Parsed candidates and card sections are frozen dataclasses: they are produced
once by a parser and never mutated. ``ImportResult`` and ``DuplicateGroup`` are
the values handed back to callers. ``MappingUpdate`` validates user-supplied
edits to a learned description mapping and is the only model that accepts
untrusted input, hence pydantic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from ledger_db.models.ledger import LedgerTransaction
from pydantic import BaseModel, ConfigDict, field_validator

from .errors import ReversalLinkError

# ---------------------------------------------------------------------------
# Parser output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CandidateTransaction:
    """A parsed, not-yet-persisted transaction.

    ``amount`` carries the sign exactly as printed in the source: delimited
    bank exports are already signed (debits negative), whereas card statements
    print charges as positive values. ``raw_line`` is the source text the raw
    fingerprint is computed from.
    """

    date: date
    description: str
    amount: Decimal
    raw_line: str
    current_installment: int | None = None
    total_installments: int | None = None
    card_suffix: str | None = None
    holder_name: str | None = None
    foreign_amount: Decimal | None = None

    @property
    def is_installment(self) -> bool:
        return self.current_installment is not None and self.total_installments is not None


@dataclass(frozen=True, slots=True)
class CardSection:
    """All candidates printed under one ``NNNN - HOLDER`` header."""

    card_suffix: str
    holder_name: str
    candidates: tuple[CandidateTransaction, ...]


@dataclass(frozen=True, slots=True)
class ParsedStatement:
    """Output of the delimited-line parser."""

    candidates: tuple[CandidateTransaction, ...]
    skipped_lines: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ParsedCardStatement:
    """Output of the card-statement section parser."""

    sections: tuple[CardSection, ...]
    skipped_lines: tuple[str, ...] = ()

    @property
    def candidate_count(self) -> int:
        return sum(len(s.candidates) for s in self.sections)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ImportResult:
    """Counters and persisted rows for one import.

    ``total_rows`` counts every data row considered (parsed or not);
    ``skipped_rows`` covers parse failures and fingerprint rejections alike.
    """

    import_id: int | None
    status: str
    total_rows: int = 0
    imported_rows: int = 0
    skipped_rows: int = 0
    error_message: str | None = None
    transactions: list[LedgerTransaction] = field(default_factory=list)
    reversals_linked: int = 0
    # Pairs that could not be linked; detection may be retried on them
    reversal_link_failures: list[ReversalLinkError] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DuplicateGroup:
    """Transactions of mixed source sharing an amount within a date window.

    Keyed by the date and amount of the first member.
    """

    date: date
    amount: Decimal
    transactions: tuple[LedgerTransaction, ...]

    @property
    def key(self) -> str:
        return f"{self.date.isoformat()}|{self.amount}"


# ---------------------------------------------------------------------------
# User edits
# ---------------------------------------------------------------------------


class MappingUpdate(BaseModel):
    """Edit applied to a description mapping and cascaded to its transactions."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    simplified_description: str | None = None
    category_id: int | None = None

    @field_validator("simplified_description")
    @classmethod
    def _strip_simplified(cls, v: str | None) -> str | None:
        if v is None:
            return None
        s = " ".join(v.split())
        return s or None

    @field_validator("category_id")
    @classmethod
    def _positive_category(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("category_id must be a positive integer")
        return v


__all__ = [
    "CandidateTransaction",
    "CardSection",
    "ParsedStatement",
    "ParsedCardStatement",
    "ImportResult",
    "DuplicateGroup",
    "MappingUpdate",
]
