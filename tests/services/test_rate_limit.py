# tests/services/test_rate_limit.py
"""Tests for the daily review allowance."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select

from quorum.core.errors import RateLimitError
from quorum.models import ReviewVote
from quorum.services.content import ReviewType
from quorum.services.rate_limit import ReviewRateLimiter
from quorum.services.review import ReviewQueueService


@pytest.fixture()
def flagged_items(db_session, make_user, make_question, make_comment):
    """Return a factory flagging ``n`` fresh comments for one review type."""

    def _flag(n: int, review_type: str = "spam_scam") -> list[int]:
        flagger = make_user()
        question = make_question(make_user())
        service = ReviewQueueService(db_session)
        return [
            service.flag(
                "comment", make_comment(question, make_user()).id, review_type, flagger.id
            ).review_queue_id
            for _ in range(n)
        ]

    return _flag


def test_twenty_first_item_is_rejected_per_review_type(
    db_session, make_user, flagged_items
) -> None:
    reviewer = make_user(reputation=1000)
    spam_items = flagged_items(21)
    outdated_items = flagged_items(1, "outdated")
    service = ReviewQueueService(db_session)

    for item_id in spam_items[:20]:
        service.vote(item_id, reviewer.id, "keep")

    with pytest.raises(RateLimitError) as excinfo:
        service.vote(spam_items[20], reviewer.id, "keep")

    assert excinfo.value.limit == 20
    assert excinfo.value.reset_at.hour == 0
    assert excinfo.value.reset_at > datetime.now(UTC)
    assert excinfo.value.status_code == 429

    # Other review types have their own allowance.
    outcome = service.vote(outdated_items[0], reviewer.id, "current")
    assert outcome.vote_recorded


def test_changing_a_vote_does_not_consume_allowance(db_session, make_user, flagged_items) -> None:
    reviewer = make_user(reputation=1000)
    items = flagged_items(2)
    service = ReviewQueueService(db_session, limiter=ReviewRateLimiter(db_session, daily_limit=1))

    service.vote(items[0], reviewer.id, "keep")
    changed = service.vote(items[0], reviewer.id, "hide")

    assert changed.vote_recorded
    with pytest.raises(RateLimitError):
        service.vote(items[1], reviewer.id, "keep")


def test_usage_counts_only_the_current_utc_day(db_session, make_user, flagged_items) -> None:
    reviewer = make_user()
    items = flagged_items(3)
    service = ReviewQueueService(db_session)
    for item_id in items:
        service.vote(item_id, reviewer.id, "keep")
    limiter = ReviewRateLimiter(db_session)

    today = limiter.usage(reviewer.id, ReviewType.SPAM_SCAM)
    tomorrow = limiter.usage(
        reviewer.id, ReviewType.SPAM_SCAM, now=datetime.now(UTC) + timedelta(days=1)
    )

    assert today.reviewed_today == 3
    assert today.remaining == 17
    assert tomorrow.reviewed_today == 0


def test_changing_yesterdays_vote_leaves_todays_allowance(
    db_session, make_user, flagged_items
) -> None:
    reviewer = make_user(reputation=1000)
    old_item, new_item = flagged_items(2)
    service = ReviewQueueService(db_session, limiter=ReviewRateLimiter(db_session, daily_limit=1))
    service.vote(old_item, reviewer.id, "keep")
    old_vote = db_session.scalars(
        select(ReviewVote).where(
            ReviewVote.review_queue_id == old_item, ReviewVote.user_id == reviewer.id
        )
    ).one()
    old_vote.created_at = old_vote.voted_at = datetime.now(UTC) - timedelta(days=1)
    db_session.commit()

    service.vote(old_item, reviewer.id, "hide")
    outcome = service.vote(new_item, reviewer.id, "keep")

    assert outcome.vote_recorded
    db_session.refresh(old_vote)
    assert old_vote.created_at < old_vote.voted_at
