"""Card registry lookups for card-statement sections."""

from __future__ import annotations

from ledger_db.models.ledger import CreditCard
from sqlalchemy import select
from sqlalchemy.orm import Session

from .logging_setup import get_logger

logger = get_logger("statement_ingest.cards")


def _canonical_name(name: str) -> str:
    return " ".join(name.upper().split())


def holder_names_match(card_holder: str | None, statement_holder: str | None) -> bool:
    """Loose holder-name comparison.

    Names match when equal after uppercasing and whitespace collapsing, or
    when both the first and the last token agree (middle names and initials
    are often abbreviated on statements).
    """

    if not card_holder or not statement_holder:
        return False
    a = _canonical_name(card_holder)
    b = _canonical_name(statement_holder)
    if a == b:
        return True
    a_parts, b_parts = a.split(), b.split()
    if len(a_parts) < 2 or len(b_parts) < 2:
        return False
    return a_parts[0] == b_parts[0] and a_parts[-1] == b_parts[-1]


def resolve_card(
    session: Session, *, account_id: int, card_suffix: str, holder_name: str | None
) -> CreditCard | None:
    """Pick the account card for a statement section.

    Zero matches leave the section uncarded; one match is used as-is; several
    matches are disambiguated by holder name, falling back to the first card.
    Never raises for ambiguity.
    """

    candidates = list(
        session.execute(
            select(CreditCard)
            .where(
                CreditCard.account_id == account_id,
                CreditCard.last_four_digits == card_suffix,
            )
            .order_by(CreditCard.id)
        )
        .unique()
        .scalars()
    )
    if not candidates:
        logger.warning(
            "No credit card found with last four digits %s for account %s",
            card_suffix,
            account_id,
        )
        return None
    if len(candidates) == 1:
        return candidates[0]

    for card in candidates:
        holder = card.holder.name if card.holder is not None else None
        if holder_names_match(holder, holder_name):
            return card
    logger.warning(
        "Multiple cards match digits %s but none match holder name %s. Using first.",
        card_suffix,
        holder_name,
    )
    return candidates[0]


__all__ = ["holder_names_match", "resolve_card"]
