# tests/services/test_closure.py
"""Tests for close votes, the gold-badge hammer and auto-close."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import select

from quorum.core.errors import (
    AlreadyVotedError,
    InsufficientBadgeError,
    InsufficientReputationError,
    InvalidRequestError,
    QuestionAlreadyClosedError,
    SelfContentError,
)
from quorum.db.time import utcnow
from quorum.models import (
    BadgeTier,
    CloseReason,
    CloseVote,
    ModerationLogEntry,
    QuestionDuplicate,
    QuestionStatus,
    ReputationEntry,
)
from quorum.services.closure import ClosureService
from quorum.services.reputation import ReputationLedger


def _voters(make_user, n: int, reputation: int = 1000):
    return [make_user(reputation=reputation) for _ in range(n)]


def test_close_by_consensus_rewards_each_voter(
    db_session, make_user, make_question, set_closure_config, notifier
) -> None:
    set_closure_config(close_votes_needed=3)
    db_session.add(CloseReason(reason_key="stale-prices", display_name="Stale prices"))
    db_session.commit()
    owner = make_user(reputation=1)
    question = make_question(owner)
    voters = _voters(make_user, 3)
    service = ClosureService(db_session, notifier=notifier)

    outcomes = [service.cast_close_vote(question.id, v.id, "stale-prices") for v in voters]

    assert [o.closed for o in outcomes] == [False, False, True]
    assert outcomes[-1].vote_count == 3
    assert set(outcomes[-1].rewarded_user_ids) == {v.id for v in voters}
    db_session.refresh(question)
    assert question.status == QuestionStatus.CLOSED
    assert question.close_reason_code == "stale-prices"
    assert question.closed_by == voters[-1].id
    for voter in voters:
        db_session.refresh(voter)
        assert voter.reputation == 1002
    assert [n.user_id for n in notifier.sent] == [owner.id]


def test_close_votes_are_partitioned_per_reason(db_session, make_user, make_question) -> None:
    question = make_question(make_user())
    voters = _voters(make_user, 5)
    service = ClosureService(db_session)

    for voter in voters[:3]:
        service.cast_close_vote(question.id, voter.id, "unclear")
    for voter in voters[3:]:
        outcome = service.cast_close_vote(question.id, voter.id, "off_topic")

    assert not outcome.closed
    db_session.refresh(question)
    assert question.status == QuestionStatus.OPEN
    counts = {c.reason_key: c.vote_count for c in service.close_vote_counts(question.id)}
    assert counts == {"unclear": 3, "off_topic": 2}


def test_user_may_vote_for_several_reasons_once_each(db_session, make_user, make_question) -> None:
    question = make_question(make_user())
    voter = make_user()
    service = ClosureService(db_session)

    service.cast_close_vote(question.id, voter.id, "unclear")
    service.cast_close_vote(question.id, voter.id, "too_broad")

    with pytest.raises(AlreadyVotedError):
        service.cast_close_vote(question.id, voter.id, "unclear")
    assert service.votes.close_tally(question.id, "unclear") == 1


def test_self_close_vote_is_denied_without_side_effects(db_session, make_user, make_question) -> None:
    owner = make_user()
    question = make_question(owner)

    with pytest.raises(SelfContentError):
        ClosureService(db_session).cast_close_vote(question.id, owner.id, "unclear")

    assert db_session.scalars(select(CloseVote)).all() == []


def test_close_vote_requires_reputation(db_session, make_user, make_question) -> None:
    question = make_question(make_user())
    voter = make_user(reputation=499)

    with pytest.raises(InsufficientReputationError) as excinfo:
        ClosureService(db_session).cast_close_vote(question.id, voter.id, "unclear")

    assert excinfo.value.required == 500


def test_gold_badge_holder_casts_counted_vote_at_low_reputation(
    db_session, make_user, make_tag, make_question, grant_badge
) -> None:
    tag = make_tag("python")
    question = make_question(make_user(), tags=[tag])
    voter = make_user(reputation=1)
    grant_badge(voter, tag, BadgeTier.GOLD)

    outcome = ClosureService(db_session).cast_close_vote(question.id, voter.id, "unclear")

    assert outcome.vote_count == 1
    assert not outcome.closed


def test_closed_question_rejects_further_votes(
    db_session, make_user, make_question, set_closure_config
) -> None:
    set_closure_config(close_votes_needed=1)
    question = make_question(make_user())
    first, second = make_user(), make_user()
    service = ClosureService(db_session)
    service.cast_close_vote(question.id, first.id, "unclear")

    with pytest.raises(QuestionAlreadyClosedError):
        service.cast_close_vote(question.id, second.id, "unclear")

    entries = db_session.scalars(select(ReputationEntry)).all()
    assert [e.user_id for e in entries] == [first.id]


def test_reason_validation(db_session, make_user, make_question) -> None:
    question = make_question(make_user())
    voter = make_user()
    service = ClosureService(db_session)

    with pytest.raises(InvalidRequestError, match="Invalid close reason"):
        service.cast_close_vote(question.id, voter.id, "made_up")
    with pytest.raises(InvalidRequestError, match="requires additional details"):
        service.cast_close_vote(question.id, voter.id, "other")
    with pytest.raises(InvalidRequestError, match="duplicate_of"):
        service.cast_close_vote(question.id, voter.id, "duplicate")
    with pytest.raises(InvalidRequestError, match="itself"):
        service.cast_close_vote(question.id, voter.id, "duplicate", duplicate_of=question.id)

    outcome = service.cast_close_vote(question.id, voter.id, "other", details="Asked in French")
    assert outcome.vote_count == 1


def test_duplicate_closure_links_most_voted_target(
    db_session, make_user, make_question, set_closure_config
) -> None:
    set_closure_config(close_votes_needed=3)
    author = make_user()
    question = make_question(author)
    canonical, other = make_question(author), make_question(author)
    voters = _voters(make_user, 3)
    service = ClosureService(db_session)

    service.cast_close_vote(question.id, voters[0].id, "duplicate", duplicate_of=other.id)
    service.cast_close_vote(question.id, voters[1].id, "duplicate", duplicate_of=canonical.id)
    outcome = service.cast_close_vote(
        question.id, voters[2].id, "duplicate", duplicate_of=canonical.id
    )

    assert outcome.closed
    link = db_session.get(QuestionDuplicate, question.id)
    assert link is not None
    assert link.duplicate_of_id == canonical.id


def test_closing_deactivates_votes_for_every_reason(
    db_session, make_user, make_question, set_closure_config
) -> None:
    set_closure_config(close_votes_needed=2)
    question = make_question(make_user())
    a, b, c = _voters(make_user, 3)
    service = ClosureService(db_session)
    service.cast_close_vote(question.id, c.id, "too_broad")
    service.cast_close_vote(question.id, a.id, "unclear")
    service.cast_close_vote(question.id, b.id, "unclear")

    active = db_session.scalars(select(CloseVote).where(CloseVote.is_active.is_(True))).all()

    assert active == []
    # Only the winning reason's voters are paid.
    db_session.refresh(c)
    assert c.reputation == 1000


def test_hammer_with_gold_badge_closes_without_bonus(
    db_session, make_user, make_tag, make_question, grant_badge, notifier
) -> None:
    tag = make_tag("python")
    owner = make_user()
    question = make_question(owner, tags=[tag])
    target = make_question(owner, tags=[tag])
    hammerer = make_user(reputation=1)
    grant_badge(hammerer, tag, BadgeTier.GOLD)

    outcome = ClosureService(db_session, notifier=notifier).hammer_close(
        question.id, hammerer.id, "duplicate", duplicate_target_id=target.id
    )

    assert outcome.closed_reason == f"Duplicate of question #{target.id}"
    db_session.refresh(question)
    db_session.refresh(hammerer)
    assert question.status == QuestionStatus.CLOSED
    assert question.close_reason_code == "duplicate"
    assert hammerer.reputation == 1
    assert db_session.scalars(select(ReputationEntry)).all() == []

    audit = db_session.scalars(select(CloseVote)).one()
    assert audit.is_hammer
    assert not audit.is_active
    log = db_session.scalars(select(ModerationLogEntry)).one()
    assert log.action_type == "hammer_close"
    assert log.metadata_["gold_badge_used"] is True
    assert db_session.get(QuestionDuplicate, question.id).duplicate_of_id == target.id
    assert len(notifier.sent) == 1


@pytest.mark.parametrize("tier", [BadgeTier.SILVER, BadgeTier.BRONZE])
def test_hammer_rejects_non_gold_badges(
    db_session, make_user, make_tag, make_question, grant_badge, tier
) -> None:
    tag = make_tag("python")
    question = make_question(make_user(), tags=[tag])
    actor = make_user(reputation=100_000)
    grant_badge(actor, tag, tier)

    with pytest.raises(InsufficientBadgeError):
        ClosureService(db_session).hammer_close(question.id, actor.id, "spam")

    db_session.refresh(question)
    assert question.status == QuestionStatus.OPEN


def test_hammer_ignores_inactive_gold_badge(
    db_session, make_user, make_tag, make_question, grant_badge
) -> None:
    tag = make_tag("python")
    question = make_question(make_user(), tags=[tag])
    actor = make_user()
    grant_badge(actor, tag, BadgeTier.GOLD, is_active=False)

    with pytest.raises(InsufficientBadgeError):
        ClosureService(db_session).hammer_close(question.id, actor.id, "off-topic")


def test_hammer_on_own_question_is_denied(
    db_session, make_user, make_tag, make_question, grant_badge
) -> None:
    tag = make_tag("python")
    owner = make_user()
    question = make_question(owner, tags=[tag])
    grant_badge(owner, tag, BadgeTier.GOLD)

    with pytest.raises(SelfContentError):
        ClosureService(db_session).hammer_close(question.id, owner.id, "spam")


def test_hammer_rejects_unknown_action(db_session, make_user, make_question) -> None:
    question = make_question(make_user())
    with pytest.raises(InvalidRequestError):
        ClosureService(db_session).hammer_close(question.id, make_user().id, "rude")


def test_auto_close_on_low_score(db_session, make_user, make_question, set_closure_config) -> None:
    set_closure_config(auto_close_enabled=True, auto_close_score_threshold=-5)
    question = make_question(make_user(), score=-5)
    service = ClosureService(db_session)

    assert service.check_auto_close(question.id) is True

    db_session.refresh(question)
    assert question.status == QuestionStatus.CLOSED
    assert question.auto_closed
    assert question.close_reason_code == "low_quality"
    assert question.closed_by is None
    log = db_session.scalars(select(ModerationLogEntry)).one()
    assert log.action_type == "auto_close"
    assert log.user_id is None


def test_auto_close_disabled_or_score_too_high(
    db_session, make_user, make_question, set_closure_config
) -> None:
    question = make_question(make_user(), score=-50)
    service = ClosureService(db_session)
    assert service.check_auto_close(question.id) is False

    set_closure_config(auto_close_enabled=True)
    healthy = make_question(make_user(), score=-4)
    assert service.check_auto_close(healthy.id) is False
    db_session.refresh(healthy)
    assert healthy.status == QuestionStatus.OPEN


def test_expire_stale_close_votes(db_session, make_user, make_question) -> None:
    question = make_question(make_user())
    old_voter, new_voter = make_user(), make_user()
    service = ClosureService(db_session)
    service.cast_close_vote(question.id, old_voter.id, "unclear")
    service.cast_close_vote(question.id, new_voter.id, "unclear")
    stale = db_session.scalars(select(CloseVote).where(CloseVote.user_id == old_voter.id)).one()
    stale.voted_at = utcnow() - timedelta(days=10)
    db_session.commit()

    assert service.expire_stale_close_votes() == 1
    assert service.votes.close_tally(question.id, "unclear") == 1

    # The expired voter may vote again; the old row is reactivated.
    service.cast_close_vote(question.id, old_voter.id, "unclear")
    assert service.votes.close_tally(question.id, "unclear") == 2
    assert len(db_session.scalars(select(CloseVote)).all()) == 2


def test_close_reasons_lists_active_catalogue(db_session) -> None:
    keys = [reason.reason_key for reason in ClosureService(db_session).close_reasons()]
    assert "duplicate" in keys
    assert "other" in keys


def test_failed_award_rolls_back_the_whole_close(
    db_session, make_user, make_question, set_closure_config
) -> None:
    set_closure_config(close_votes_needed=2)
    question = make_question(make_user())
    first, second = make_user(), make_user()
    service = ClosureService(db_session)
    service.cast_close_vote(question.id, first.id, "unclear")

    with patch.object(ReputationLedger, "award", side_effect=RuntimeError("ledger down")):
        with pytest.raises(RuntimeError):
            service.cast_close_vote(question.id, second.id, "unclear")

    db_session.refresh(question)
    assert question.status == QuestionStatus.OPEN
    assert question.close_reason_code is None
    votes = db_session.scalars(select(CloseVote)).all()
    assert [vote.user_id for vote in votes] == [first.id]
    assert votes[0].is_active
    assert db_session.scalars(select(ReputationEntry)).all() == []
