from __future__ import annotations

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from ledger_db.models.ledger import SOURCE_IMPORTED, SOURCE_MANUAL
from statement_ingest.duplicates import (
    find_duplicate_groups,
    find_potential_duplicates_for_manual_entry,
    group_cross_source_duplicates,
)

from tests.helpers.db import add_transaction, seed_account


def _row(day: int, amount: str, source: str, name: str = ""):
    return SimpleNamespace(
        name=name, date=date(2024, 3, day), amount=Decimal(amount), source=source
    )


def _names(groups):
    return [[m.name for m in g.transactions] for g in groups]


# ---- Pure grouping -----------------------------------------------------------


def test_manual_and_imported_rows_group_together():
    rows = [
        _row(1, "-50.00", SOURCE_MANUAL, "manual"),
        _row(3, "-50.00", SOURCE_IMPORTED, "imported"),
    ]
    groups = group_cross_source_duplicates(rows, window_days=3)

    assert _names(groups) == [["manual", "imported"]]
    assert groups[0].key == "2024-03-01|-50.00"
    assert groups[0].amount == Decimal("-50.00")


def test_single_source_groups_are_not_reported():
    rows = [
        _row(1, "-50.00", SOURCE_IMPORTED),
        _row(2, "-50.00", SOURCE_IMPORTED),
        _row(5, "-20.00", SOURCE_MANUAL),
        _row(5, "-20.00", SOURCE_MANUAL),
    ]
    assert group_cross_source_duplicates(rows, window_days=3) == []


@pytest.mark.parametrize(("gap", "grouped"), [(3, True), (4, False)])
def test_window_is_inclusive(gap, grouped):
    rows = [_row(1, "-50.00", SOURCE_MANUAL), _row(1 + gap, "-50.00", SOURCE_IMPORTED)]
    assert bool(group_cross_source_duplicates(rows, window_days=3)) is grouped


def test_amounts_must_match_with_sign():
    rows = [_row(1, "-50.00", SOURCE_MANUAL), _row(2, "50.00", SOURCE_IMPORTED)]
    assert group_cross_source_duplicates(rows, window_days=3) == []


def test_grouping_is_anchored_on_the_first_member():
    # Day 7 is within 3 days of day 5 but not of the group's first member (day 1)
    rows = [
        _row(1, "-50.00", SOURCE_MANUAL, "a"),
        _row(4, "-50.00", SOURCE_IMPORTED, "b"),
        _row(5, "-50.00", SOURCE_MANUAL, "c"),
        _row(7, "-50.00", SOURCE_IMPORTED, "d"),
    ]
    groups = group_cross_source_duplicates(rows, window_days=3)

    assert _names(groups) == [["a", "b"], ["c", "d"]]


def test_row_joins_the_first_open_group_that_fits():
    rows = [
        _row(1, "-50.00", SOURCE_MANUAL, "a"),
        _row(3, "-50.00", SOURCE_MANUAL, "b"),
        _row(2, "-50.00", SOURCE_IMPORTED, "c"),
    ]
    groups = group_cross_source_duplicates(rows, window_days=3)

    assert _names(groups) == [["a", "b", "c"]]


# ---- Database ----------------------------------------------------------------


def test_find_duplicate_groups_scans_one_account_in_date_order(session, account):
    other = seed_account(session, "Other")
    imported = add_transaction(
        session, account, tx_date=date(2024, 3, 3), description="MERCADO", amount="-120.00"
    )
    manual = add_transaction(
        session,
        account,
        tx_date=date(2024, 3, 1),
        description="Mercado do bairro",
        amount="-120.00",
        source=SOURCE_MANUAL,
    )
    add_transaction(
        session, other, tx_date=date(2024, 3, 1), description="MERCADO", amount="-120.00"
    )

    groups = find_duplicate_groups(session, account_id=account.id)

    assert len(groups) == 1
    assert groups[0].transactions == (manual, imported)
    assert groups[0].key == "2024-03-01|-120.00"
    assert find_duplicate_groups(session, account_id=other.id) == []


def test_duplicate_window_from_environment(session, account, monkeypatch):
    add_transaction(
        session,
        account,
        tx_date=date(2024, 3, 1),
        description="X",
        amount="-10.00",
        source=SOURCE_MANUAL,
    )
    add_transaction(session, account, tx_date=date(2024, 3, 6), description="X", amount="-10.00")

    assert find_duplicate_groups(session, account_id=account.id) == []
    monkeypatch.setenv("STATEMENT_INGEST_DUPLICATE_WINDOW_DAYS", "5")
    assert len(find_duplicate_groups(session, account_id=account.id)) == 1


def test_potential_duplicates_for_manual_entry(session, account):
    hit = add_transaction(
        session, account, tx_date=date(2024, 3, 4), description="UBER", amount="-25.00"
    )
    add_transaction(
        session, account, tx_date=date(2024, 3, 8), description="UBER", amount="-25.00"
    )
    add_transaction(
        session, account, tx_date=date(2024, 3, 2), description="UBER EATS", amount="-25.01"
    )
    add_transaction(
        session,
        account,
        tx_date=date(2024, 3, 1),
        description="Uber",
        amount="-25.00",
        source=SOURCE_MANUAL,
    )

    got = find_potential_duplicates_for_manual_entry(
        session, account_id=account.id, date=date(2024, 3, 1), amount=Decimal("-25.00")
    )

    assert got == [hit]
