from __future__ import annotations

import pytest
from statement_ingest.settings import (
    DEFAULT_DUPLICATE_WINDOW_DAYS,
    DEFAULT_REVERSAL_WINDOW_DAYS,
    DEFAULT_SIMILARITY_THRESHOLD,
    resolve_duplicate_window_days,
    resolve_reversal_window_days,
    resolve_similarity_threshold,
)


def test_defaults():
    assert resolve_reversal_window_days() == DEFAULT_REVERSAL_WINDOW_DAYS == 90
    assert resolve_duplicate_window_days() == DEFAULT_DUPLICATE_WINDOW_DAYS == 3
    assert resolve_similarity_threshold() == DEFAULT_SIMILARITY_THRESHOLD == 0.6


def test_explicit_values_win_over_environment(monkeypatch):
    monkeypatch.setenv("STATEMENT_INGEST_REVERSAL_WINDOW_DAYS", "30")
    monkeypatch.setenv("STATEMENT_INGEST_SIMILARITY_THRESHOLD", "0.9")
    monkeypatch.setenv("STATEMENT_INGEST_DUPLICATE_WINDOW_DAYS", "7")

    assert resolve_reversal_window_days() == 30
    assert resolve_reversal_window_days(10) == 10
    assert resolve_similarity_threshold() == 0.9
    assert resolve_similarity_threshold(0.5) == 0.5
    assert resolve_duplicate_window_days() == 7
    assert resolve_duplicate_window_days(0) == 0


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("STATEMENT_INGEST_REVERSAL_WINDOW_DAYS", "ninety"),
        ("STATEMENT_INGEST_REVERSAL_WINDOW_DAYS", "-1"),
        ("STATEMENT_INGEST_SIMILARITY_THRESHOLD", "high"),
        ("STATEMENT_INGEST_SIMILARITY_THRESHOLD", "1.5"),
        ("STATEMENT_INGEST_DUPLICATE_WINDOW_DAYS", "   "),
    ],
)
def test_bad_environment_values_fall_back_to_defaults(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    assert resolve_reversal_window_days() == DEFAULT_REVERSAL_WINDOW_DAYS
    assert resolve_similarity_threshold() == DEFAULT_SIMILARITY_THRESHOLD
    assert resolve_duplicate_window_days() == DEFAULT_DUPLICATE_WINDOW_DAYS


@pytest.mark.parametrize(
    ("resolver", "value"),
    [
        (resolve_reversal_window_days, -1),
        (resolve_duplicate_window_days, -3),
        (resolve_similarity_threshold, 1.01),
        (resolve_similarity_threshold, -0.1),
    ],
)
def test_bad_explicit_values_raise(resolver, value):
    with pytest.raises(ValueError):
        resolver(value)
