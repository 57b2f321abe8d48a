"""Text and number normalization shared by parsers and fingerprinting.

``normalize_description`` produces the canonical key used both for learned
description mappings and for the normalized fingerprint. Two descriptions that
differ only by an embedded timestamp, case, punctuation or spacing produce the
same key.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

# Full dates first so their day/month prefix is not consumed by the short form.
_DMY_DATE = re.compile(r"\d{2}/\d{2}/\d{4}")
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
_DAY_MONTH = re.compile(r"\b\d{1,2}/\d{2}\b")
_TIME = re.compile(r"\b\d{1,2}h(?:\d{2})?\b")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")

# Space-like characters commonly produced by PDF text extraction
_EXOTIC_SPACES = str.maketrans({"\u00a0": " ", "\u2007": " ", "\u202f": " "})

_CURRENCY = re.compile(r"R\$|\$")


def _fold_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_description(text: str | None) -> str:
    """Return the canonical mapping/fingerprint key for a merchant description.

    Steps: lowercase; drop DD/MM/YYYY, YYYY-MM-DD and DD/MM tokens; drop
    HHhMM/HHh time tokens; replace every non-alphanumeric run with a single
    space; collapse whitespace; trim. ``None`` and blank input yield ``""``.
    Accented letters are folded to their ASCII base letter first so that
    ``"PÃO"`` keys as ``"pao"``.
    """

    if not text:
        return ""
    s = _fold_accents(text).lower()
    s = _DMY_DATE.sub(" ", s)
    s = _ISO_DATE.sub(" ", s)
    s = _DAY_MONTH.sub(" ", s)
    s = _TIME.sub(" ", s)
    s = _NON_ALNUM.sub(" ", s)
    return _WHITESPACE.sub(" ", s).strip()


def normalize_whitespace(line: str) -> str:
    """Map non-breaking/figure/narrow spaces to plain spaces and trim."""

    return line.translate(_EXOTIC_SPACES).strip()


def parse_local_decimal(raw: str) -> Decimal:
    """Parse a ``1.234,56``-style amount (``.`` thousands, ``,`` decimal).

    A leading currency symbol (``R$`` or ``$``) and inner spaces are ignored;
    a leading ``-`` is kept.
    """

    s = _CURRENCY.sub("", raw)
    s = "".join(s.split())
    s = s.replace(".", "").replace(",", ".")
    if not s:
        raise ValueError(f"invalid amount: {raw!r}")
    try:
        return Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc


def parse_day_month_year(raw: str) -> date:
    """Parse a ``DD/MM/YYYY`` date."""

    try:
        return datetime.strptime(raw.strip(), "%d/%m/%Y").date()
    except ValueError as exc:
        raise ValueError(f"invalid DD/MM/YYYY date: {raw!r}") from exc


__all__ = [
    "normalize_description",
    "normalize_whitespace",
    "parse_local_decimal",
    "parse_day_month_year",
]
