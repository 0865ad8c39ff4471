# tests/services/test_reputation.py
"""Tests for the append-only reputation ledger."""

import pytest

from quorum.core.errors import NotFoundError
from quorum.models.reputation import REFERENCE_QUESTION
from quorum.services.reputation import ReputationLedger


def test_award_appends_entry_and_updates_total(db_session, make_user) -> None:
    user = make_user(reputation=10)
    ledger = ReputationLedger(db_session)

    entry = ledger.award(user.id, 2, "Close vote accepted", REFERENCE_QUESTION, 7)
    db_session.commit()

    assert ledger.current_reputation(user.id) == 12
    assert entry.points == 2
    assert entry.reference_id == 7
    assert ledger.ledger_total(user.id) == 2


def test_award_clamps_total_at_zero(db_session, make_user) -> None:
    user = make_user(reputation=3)
    ledger = ReputationLedger(db_session)

    ledger.award(user.id, -10, "Penalty", REFERENCE_QUESTION)
    db_session.commit()

    assert ledger.current_reputation(user.id) == 0


def test_award_many_pays_each_distinct_user_once(db_session, make_user) -> None:
    first, second = make_user(reputation=1), make_user(reputation=1)
    ledger = ReputationLedger(db_session)

    paid = ledger.award_many(
        [second.id, first.id, second.id], 2, "Reopen vote successful", REFERENCE_QUESTION, 1
    )
    db_session.commit()

    assert paid == sorted([first.id, second.id])
    assert ledger.current_reputation(first.id) == 3
    assert ledger.current_reputation(second.id) == 3


def test_award_unknown_user_raises(db_session) -> None:
    with pytest.raises(NotFoundError):
        ReputationLedger(db_session).award(999, 1, "x", REFERENCE_QUESTION)
    db_session.rollback()


def test_history_is_newest_first(db_session, make_user) -> None:
    user = make_user()
    ledger = ReputationLedger(db_session)
    ledger.award(user.id, 1, "first", REFERENCE_QUESTION)
    ledger.award(user.id, 2, "second", REFERENCE_QUESTION)
    db_session.commit()

    reasons = [entry.reason for entry in ledger.history(user.id)]

    assert reasons == ["second", "first"]
