from __future__ import annotations

import logging

import pytest
from statement_ingest.cards import holder_names_match, resolve_card

from tests.helpers.db import seed_account, seed_card, seed_user


@pytest.mark.parametrize(
    ("card_holder", "statement_holder", "expected"),
    [
        ("John Smith", "JOHN   SMITH", True),
        ("JOHN A SMITH", "JOHN SMITH", True),
        ("JOHN SMITH", "MARY SMITH", False),
        ("JOHN SMITH", "JOHN DOE", False),
        ("JOHN", "JOHN SMITH", False),
        ("JOHN", "john", True),
        (None, "JOHN SMITH", False),
        ("JOHN SMITH", None, False),
    ],
)
def test_holder_names_match(card_holder, statement_holder, expected):
    assert holder_names_match(card_holder, statement_holder) is expected


def test_no_card_returns_none_with_warning(session, account, caplog):
    caplog.set_level(logging.WARNING, logger="statement_ingest")
    assert (
        resolve_card(session, account_id=account.id, card_suffix="1234", holder_name="JOHN")
        is None
    )
    assert "No credit card found with last four digits 1234" in caplog.text


def test_single_card_is_used_regardless_of_holder(session, account):
    card = seed_card(session, account, last_four="1234")
    got = resolve_card(
        session, account_id=account.id, card_suffix="1234", holder_name="SOMEONE ELSE"
    )
    assert got is card


def test_cards_of_other_accounts_are_ignored(session, account):
    other = seed_account(session, "Other")
    seed_card(session, other, last_four="1234")
    assert (
        resolve_card(session, account_id=account.id, card_suffix="1234", holder_name=None)
        is None
    )


def test_holder_name_disambiguates(session, account):
    john = seed_user(session, account, "John Smith")
    mary = seed_user(session, account, "Mary Jane Smith")
    seed_card(session, account, last_four="1234", holder=john)
    mary_card = seed_card(session, account, last_four="1234", holder=mary)

    got = resolve_card(
        session, account_id=account.id, card_suffix="1234", holder_name="MARY SMITH"
    )
    assert got is mary_card


def test_ambiguous_cards_fall_back_to_first(session, account, caplog):
    caplog.set_level(logging.WARNING, logger="statement_ingest")
    john = seed_user(session, account, "John Smith")
    first = seed_card(session, account, last_four="1234", holder=john)
    seed_card(session, account, last_four="1234")

    got = resolve_card(
        session, account_id=account.id, card_suffix="1234", holder_name="PETER PARKER"
    )
    assert got is first
    assert "none match holder name PETER PARKER" in caplog.text
