"""Environment-driven tunables for detection passes.

Each resolver honors an optional explicit value first, then the matching
``STATEMENT_INGEST_*`` environment variable, then the built-in default.
Unparseable or out-of-range environment values fall back to the default with a
warning rather than failing an import.
"""

from __future__ import annotations

import os

from .logging_setup import get_logger

logger = get_logger("statement_ingest.settings")

DEFAULT_REVERSAL_WINDOW_DAYS = 90
DEFAULT_SIMILARITY_THRESHOLD = 0.6
DEFAULT_DUPLICATE_WINDOW_DAYS = 3

REVERSAL_WINDOW_ENV = "STATEMENT_INGEST_REVERSAL_WINDOW_DAYS"
SIMILARITY_THRESHOLD_ENV = "STATEMENT_INGEST_SIMILARITY_THRESHOLD"
DUPLICATE_WINDOW_ENV = "STATEMENT_INGEST_DUPLICATE_WINDOW_DAYS"


def _env_days(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning("Ignoring %s=%r (not an integer); using %d", name, raw, default)
        return default
    if value < 0:
        logger.warning("Ignoring %s=%r (negative); using %d", name, raw, default)
        return default
    return value


def resolve_reversal_window_days(override: int | None = None) -> int:
    """Days searched on each side of an expense for its reversal partner."""

    if override is not None:
        if override < 0:
            raise ValueError(f"reversal window must be >= 0 days, got {override}")
        return override
    return _env_days(REVERSAL_WINDOW_ENV, DEFAULT_REVERSAL_WINDOW_DAYS)


def resolve_duplicate_window_days(override: int | None = None) -> int:
    """Days tolerated between members of a cross-source duplicate group."""

    if override is not None:
        if override < 0:
            raise ValueError(f"duplicate window must be >= 0 days, got {override}")
        return override
    return _env_days(DUPLICATE_WINDOW_ENV, DEFAULT_DUPLICATE_WINDOW_DAYS)


def resolve_similarity_threshold(override: float | None = None) -> float:
    """Minimum description similarity for a reversal candidate, within [0, 1]."""

    if override is not None:
        if not 0.0 <= override <= 1.0:
            raise ValueError(f"similarity threshold must lie in [0, 1], got {override}")
        return float(override)
    raw = os.getenv(SIMILARITY_THRESHOLD_ENV)
    if raw is None or not raw.strip():
        return DEFAULT_SIMILARITY_THRESHOLD
    try:
        value = float(raw.strip())
    except ValueError:
        value = -1.0
    if not 0.0 <= value <= 1.0:
        logger.warning(
            "Ignoring %s=%r (expected a number in [0, 1]); using %s",
            SIMILARITY_THRESHOLD_ENV,
            raw,
            DEFAULT_SIMILARITY_THRESHOLD,
        )
        return DEFAULT_SIMILARITY_THRESHOLD
    return value


__all__ = [
    "DEFAULT_REVERSAL_WINDOW_DAYS",
    "DEFAULT_SIMILARITY_THRESHOLD",
    "DEFAULT_DUPLICATE_WINDOW_DAYS",
    "resolve_reversal_window_days",
    "resolve_duplicate_window_days",
    "resolve_similarity_threshold",
]
