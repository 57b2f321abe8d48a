"""Adapter for semicolon-delimited bank exports.

Line shape (after any preamble)::

    DD/MM/YYYY;description;amount;padding

Contract
--------
- Lines before the first date-prefixed line are preamble and ignored.
- Each data line splits on ``;`` into exactly four fields.
- The description is unquoted and trimmed; the amount uses ``.`` as thousands
  separator and ``,`` as decimal separator, with an optional currency symbol.

Failure mode
------------
A data line that does not parse is logged and recorded in
``ParsedStatement.skipped_lines``; the rest of the file is still parsed.
Blank lines are ignored without being counted.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ...logging_setup import get_logger
from ...models import CandidateTransaction, ParsedStatement
from ...normalizers import parse_day_month_year, parse_local_decimal

logger = get_logger("statement_ingest.ingest.adapters.delimited")

DELIMITER = ";"
FIELD_COUNT = 4

_DATA_LINE_START = re.compile(r"^\d{2}/\d{2}/\d{4}")


def parse_line(line: str) -> CandidateTransaction:
    """Parse one data line; raises ``ValueError`` when malformed."""

    parts = line.split(DELIMITER, FIELD_COUNT - 1)
    if len(parts) != FIELD_COUNT:
        raise ValueError(f"expected {FIELD_COUNT} fields, got {len(parts)}")
    tx_date = parse_day_month_year(parts[0])
    description = parts[1].replace('"', "").strip()
    if not description:
        raise ValueError("description is empty")
    amount = parse_local_decimal(parts[2])
    return CandidateTransaction(
        date=tx_date,
        description=description,
        amount=amount,
        raw_line=line.strip(),
    )


def parse_delimited(lines: Iterable[str]) -> ParsedStatement:
    """Turn a line stream into ordered candidates, skipping bad lines."""

    candidates: list[CandidateTransaction] = []
    skipped: list[str] = []
    in_data = False
    for raw in lines:
        line = raw.rstrip("\r\n")
        if not in_data:
            if not _DATA_LINE_START.match(line.lstrip()):
                continue
            in_data = True
        if not line.strip():
            continue
        try:
            candidates.append(parse_line(line))
        except ValueError as exc:
            logger.warning("Line ignored due to parsing error: [%s] - %s", line, exc)
            skipped.append(line)

    logger.info(
        "Parsed %d delimited rows (%d skipped)", len(candidates), len(skipped)
    )
    return ParsedStatement(candidates=tuple(candidates), skipped_lines=tuple(skipped))


__all__ = ["DELIMITER", "parse_line", "parse_delimited"]
