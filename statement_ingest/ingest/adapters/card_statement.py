"""Adapter for text extracted from multi-card credit-card statements.

The statement lists one section per card. A section starts with a header line
``NNNN - HOLDER NAME`` (last four card digits, dash, holder) and is followed by
transaction lines::

    DD/MM/YYYY  DESCRIPTION [NN/NN]  LOCAL_AMOUNT  FOREIGN_AMOUNT

Parsing is an explicit two-state machine (:class:`SectionState`). The
transition function :func:`step` consumes one line and returns the next state
plus a finished section, if the line closed one; :func:`finish` closes the
open section at end of input. Both closings share ``_close`` so that a header
and end-of-input flush identically: a section is emitted only when it holds at
least one transaction.

Lines inside a section that look like neither a header nor a transaction
(page headers, totals, blank lines) are ignored. Date-prefixed lines that
fail to match are reported as skipped rows.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable
from dataclasses import dataclass, replace

from ...logging_setup import get_logger
from ...models import CandidateTransaction, CardSection, ParsedCardStatement
from ...normalizers import normalize_whitespace, parse_day_month_year, parse_local_decimal

logger = get_logger("statement_ingest.ingest.adapters.card_statement")

CARD_HEADER = re.compile(r"^(\d{4})\s*-\s*(.+)$")
TRANSACTION_LINE = re.compile(r"^(\d{2}/\d{2}/\d{4})\s+(.+?)\s+(-?[\d.,]+)\s+([\d.,]+)$")
INSTALLMENT = re.compile(r"(\d{2})/(\d{2})")
_DATE_PREFIX = re.compile(r"^\d{2}/\d{2}/\d{4}")


class SectionState(enum.Enum):
    NO_SECTION = "no_section"
    IN_SECTION = "in_section"


@dataclass(frozen=True, slots=True)
class ParserState:
    state: SectionState = SectionState.NO_SECTION
    card_suffix: str | None = None
    holder_name: str | None = None
    candidates: tuple[CandidateTransaction, ...] = ()
    skipped: tuple[str, ...] = ()


INITIAL_STATE = ParserState()


def parse_transaction_line(
    line: str, card_suffix: str | None = None, holder_name: str | None = None
) -> CandidateTransaction | None:
    """Parse a transaction line; ``None`` when the line is not one.

    The first ``NN/NN`` token in the description is read as
    ``current/total`` installment.
    """

    normalized = normalize_whitespace(line)
    match = TRANSACTION_LINE.match(normalized)
    if match is None:
        return None
    date_raw, description, local_raw, foreign_raw = match.groups()
    description = description.strip()
    try:
        tx_date = parse_day_month_year(date_raw)
        amount = parse_local_decimal(local_raw)
        foreign = parse_local_decimal(foreign_raw)
    except ValueError as exc:
        logger.debug("Failed to parse transaction line: [%s] - %s", normalized, exc)
        return None

    current = total = None
    installment = INSTALLMENT.search(description)
    if installment is not None:
        current, total = int(installment.group(1)), int(installment.group(2))

    return CandidateTransaction(
        date=tx_date,
        description=description,
        amount=amount,
        raw_line=normalized,
        current_installment=current,
        total_installments=total,
        card_suffix=card_suffix,
        holder_name=holder_name,
        foreign_amount=foreign,
    )


def _close(state: ParserState) -> CardSection | None:
    if state.state is not SectionState.IN_SECTION or not state.candidates:
        return None
    if state.card_suffix is None or state.holder_name is None:
        raise ValueError("open card section has no card suffix or holder name")
    return CardSection(
        card_suffix=state.card_suffix,
        holder_name=state.holder_name,
        candidates=state.candidates,
    )


def step(state: ParserState, line: str) -> tuple[ParserState, CardSection | None]:
    """Consume one line; return the next state and any section it closed."""

    text = normalize_whitespace(line)
    if not text:
        return state, None

    header = CARD_HEADER.match(text)
    if header is not None:
        closed = _close(state)
        logger.info("Found card header: %s", text)
        opened = ParserState(
            state=SectionState.IN_SECTION,
            card_suffix=header.group(1),
            holder_name=header.group(2).strip(),
            skipped=state.skipped,
        )
        return opened, closed

    if state.state is SectionState.NO_SECTION:
        return state, None

    candidate = parse_transaction_line(text, state.card_suffix, state.holder_name)
    if candidate is not None:
        return replace(state, candidates=state.candidates + (candidate,)), None
    if _DATE_PREFIX.match(text):
        logger.warning("Transaction-like line didn't match pattern: [%s]", text)
        return replace(state, skipped=state.skipped + (text,)), None
    return state, None


def finish(state: ParserState) -> CardSection | None:
    """Close the open section at end of input."""

    return _close(state)


def parse_card_statement(text: str | Iterable[str]) -> ParsedCardStatement:
    """Split extracted statement text into ordered card sections."""

    lines = text.splitlines() if isinstance(text, str) else text
    sections: list[CardSection] = []
    state = INITIAL_STATE
    for line in lines:
        state, closed = step(state, line)
        if closed is not None:
            sections.append(closed)
    last = finish(state)
    if last is not None:
        sections.append(last)

    result = ParsedCardStatement(sections=tuple(sections), skipped_lines=state.skipped)
    logger.info(
        "Parsed %d card sections with %d total transactions",
        len(result.sections),
        result.candidate_count,
    )
    return result


__all__ = [
    "SectionState",
    "ParserState",
    "INITIAL_STATE",
    "parse_transaction_line",
    "step",
    "finish",
    "parse_card_statement",
]
