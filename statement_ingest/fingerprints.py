"""Content fingerprints used to keep imports idempotent.

Two SHA-256 fingerprints are computed per candidate:

- raw: over the trimmed source line; catches a byte-identical re-import.
- normalized: over ``date | normalized description | |amount| | account``;
  catches the same economic event arriving through another format (a CSV
  export and a statement PDF of the same purchase). The amount is taken in
  absolute value and quantized to two decimals, so ``100`` and ``-100.00``
  hash alike. Sign is deliberately ignored: refunds are paired by the
  reversal detector, not here.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from .normalizers import normalize_description

_CENT = Decimal("0.01")


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def amount_key(amount: Decimal | int | str) -> str:
    """Absolute amount as a fixed two-decimal string."""

    d = abs(Decimal(str(amount)))
    return f"{d.quantize(_CENT, rounding=ROUND_HALF_UP):.2f}"


def compute_raw_fingerprint(raw_line: str) -> str:
    """SHA-256 of the trimmed source line."""

    return _sha256(raw_line.strip())


def compute_normalized_fingerprint(
    tx_date: date,
    description: str | None,
    amount: Decimal | int | str,
    account_id: int,
) -> str:
    """SHA-256 over the canonicalized economic identity of a transaction.

    The identity is (date, description key, absolute amount, account), so the
    same event read from a bank export and from a card statement collides.
    """

    parts = [
        tx_date.isoformat(),
        normalize_description(description),
        amount_key(amount),
        str(account_id),
    ]
    return _sha256("|".join(parts))


def manual_raw_fingerprint() -> str:
    """Unique raw fingerprint for a manually entered row (no source line)."""

    return _sha256(f"manual:{uuid.uuid4().hex}")


__all__ = [
    "amount_key",
    "compute_raw_fingerprint",
    "compute_normalized_fingerprint",
    "manual_raw_fingerprint",
]
