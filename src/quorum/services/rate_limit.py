"""Daily review allowance per user and review type."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quorum.core.errors import RateLimitError
from quorum.core.settings import settings
from quorum.db.time import utc_day_bounds, utcnow
from quorum.models import ReviewQueueItem, ReviewVote
from quorum.services.content import ReviewType


@dataclass(frozen=True)
class ReviewUsage:
    """How much of today's allowance a user has spent on one review type."""

    daily_limit: int
    reviewed_today: int
    reset_at: datetime

    @property
    def remaining(self) -> int:
        return max(0, self.daily_limit - self.reviewed_today)


class ReviewRateLimiter:
    """Counts distinct review items a user first voted on in the current UTC day.

    :meth:`enforce` must run in the same transaction as the vote write, with
    the voter's row locked, so two concurrent requests cannot both observe
    room under the limit.
    """

    def __init__(self, db: Session, daily_limit: int | None = None) -> None:
        self.db = db
        self.daily_limit = settings.review_daily_limit if daily_limit is None else daily_limit

    def usage(self, user_id: int, review_type: ReviewType, now: datetime | None = None) -> ReviewUsage:
        start, end = utc_day_bounds(now or utcnow())
        reviewed = self.db.scalar(
            select(func.count(func.distinct(ReviewVote.review_queue_id)))
            .join(ReviewQueueItem, ReviewQueueItem.id == ReviewVote.review_queue_id)
            .where(
                ReviewVote.user_id == user_id,
                ReviewQueueItem.review_type == review_type.value,
                ReviewVote.created_at >= start,
                ReviewVote.created_at < end,
            )
        )
        return ReviewUsage(self.daily_limit, int(reviewed or 0), end)

    def enforce(self, user_id: int, review_type: ReviewType, now: datetime | None = None) -> ReviewUsage:
        """Return current usage, or raise ``RateLimitError`` when none remains."""
        usage = self.usage(user_id, review_type, now)
        if usage.remaining <= 0:
            raise RateLimitError(usage.daily_limit, usage.reset_at, review_type.value)
        return usage
