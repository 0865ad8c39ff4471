"""Vote ledger: one vote per user per decision instance, and tallies.

Uniqueness constraints on the vote tables back every upsert here, so a
retried request can never add a second row. None of these methods commit.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from quorum.db.time import utcnow
from quorum.models import CloseVote, ReopenVote, ReviewVote


@dataclass(frozen=True)
class ReviewVoteChange:
    """Result of upserting a review vote."""

    vote: ReviewVote
    created: bool
    changed: bool

    @property
    def recorded(self) -> bool:
        """True when the vote was written (new or different value)."""
        return self.created or self.changed


class VoteLedger:
    """Upserts and tallies for close, reopen and review votes."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # -- close votes -------------------------------------------------------

    def has_active_close_vote(self, question_id: int, user_id: int, reason_code: str) -> bool:
        return (
            self.db.scalar(
                select(CloseVote.id).where(
                    CloseVote.question_id == question_id,
                    CloseVote.user_id == user_id,
                    CloseVote.reason_code == reason_code,
                    CloseVote.is_active.is_(True),
                )
            )
            is not None
        )

    def record_close_vote(
        self,
        question_id: int,
        user_id: int,
        reason_code: str,
        details: str | None,
        duplicate_of_id: int | None = None,
        *,
        is_hammer: bool = False,
    ) -> CloseVote:
        """Insert the vote or reactivate the user's earlier row for this reason."""
        vote = self.db.scalar(
            select(CloseVote).where(
                CloseVote.question_id == question_id,
                CloseVote.user_id == user_id,
                CloseVote.reason_code == reason_code,
            )
        )
        if vote is None:
            vote = CloseVote(
                question_id=question_id,
                user_id=user_id,
                reason_code=reason_code,
            )
            self.db.add(vote)
        vote.details = details
        vote.duplicate_of_id = duplicate_of_id
        vote.is_hammer = is_hammer
        vote.is_active = True
        vote.voted_at = utcnow()
        self.db.flush()
        return vote

    def close_tally(self, question_id: int, reason_code: str) -> int:
        """Count distinct active voters for one reason on one question."""
        return int(
            self.db.scalar(
                select(func.count(func.distinct(CloseVote.user_id))).where(
                    CloseVote.question_id == question_id,
                    CloseVote.reason_code == reason_code,
                    CloseVote.is_active.is_(True),
                    CloseVote.is_hammer.is_(False),
                )
            )
            or 0
        )

    def close_tallies(self, question_id: int) -> dict[str, int]:
        """Return active vote counts keyed by reason, for display."""
        rows = self.db.execute(
            select(CloseVote.reason_code, func.count(func.distinct(CloseVote.user_id)))
            .where(
                CloseVote.question_id == question_id,
                CloseVote.is_active.is_(True),
                CloseVote.is_hammer.is_(False),
            )
            .group_by(CloseVote.reason_code)
        ).all()
        return {reason: int(count) for reason, count in rows}

    def close_voters(self, question_id: int, reason_code: str) -> Sequence[CloseVote]:
        return self.db.scalars(
            select(CloseVote)
            .where(
                CloseVote.question_id == question_id,
                CloseVote.reason_code == reason_code,
                CloseVote.is_active.is_(True),
                CloseVote.is_hammer.is_(False),
            )
            .order_by(CloseVote.voted_at, CloseVote.id)
        ).all()

    @staticmethod
    def duplicate_target(votes: Sequence[CloseVote]) -> int | None:
        """Return the most-voted duplicate target; earliest vote breaks ties."""
        targets = [vote.duplicate_of_id for vote in votes if vote.duplicate_of_id is not None]
        if not targets:
            return None
        return Counter(targets).most_common(1)[0][0]

    def deactivate_close_votes(self, question_id: int) -> None:
        self.db.execute(
            update(CloseVote)
            .where(CloseVote.question_id == question_id, CloseVote.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )

    # -- reopen votes ------------------------------------------------------

    def has_active_reopen_vote(self, question_id: int, user_id: int) -> bool:
        return (
            self.db.scalar(
                select(ReopenVote.id).where(
                    ReopenVote.question_id == question_id,
                    ReopenVote.user_id == user_id,
                    ReopenVote.is_active.is_(True),
                )
            )
            is not None
        )

    def record_reopen_vote(self, question_id: int, user_id: int, reason: str | None) -> ReopenVote:
        """Insert the vote or reactivate the user's row from an earlier cycle."""
        vote = self.db.scalar(
            select(ReopenVote).where(
                ReopenVote.question_id == question_id,
                ReopenVote.user_id == user_id,
            )
        )
        if vote is None:
            vote = ReopenVote(question_id=question_id, user_id=user_id)
            self.db.add(vote)
        vote.reason = reason
        vote.is_active = True
        vote.voted_at = utcnow()
        self.db.flush()
        return vote

    def reopen_voter_ids(self, question_id: int) -> list[int]:
        return list(
            self.db.scalars(
                select(ReopenVote.user_id).where(
                    ReopenVote.question_id == question_id,
                    ReopenVote.is_active.is_(True),
                )
            )
        )

    def reopen_tally(self, question_id: int) -> int:
        return len(set(self.reopen_voter_ids(question_id)))

    def deactivate_reopen_votes(self, question_id: int) -> None:
        self.db.execute(
            update(ReopenVote)
            .where(ReopenVote.question_id == question_id, ReopenVote.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )

    # -- review votes ------------------------------------------------------

    def review_vote_for(self, item_id: int, user_id: int) -> ReviewVote | None:
        return self.db.scalar(
            select(ReviewVote).where(
                ReviewVote.review_queue_id == item_id,
                ReviewVote.user_id == user_id,
            )
        )

    def upsert_review_vote(self, item_id: int, user_id: int, value: str) -> ReviewVoteChange:
        """Record ``value``; an identical repeat leaves the row untouched."""
        vote = self.review_vote_for(item_id, user_id)
        if vote is None:
            vote = ReviewVote(review_queue_id=item_id, user_id=user_id, vote=value)
            self.db.add(vote)
            self.db.flush()
            return ReviewVoteChange(vote, created=True, changed=False)
        if vote.vote == value:
            return ReviewVoteChange(vote, created=False, changed=False)
        vote.vote = value
        vote.voted_at = utcnow()
        self.db.flush()
        return ReviewVoteChange(vote, created=False, changed=True)

    def review_tally(self, item_id: int, hide_value: str, keep_value: str) -> tuple[int, int]:
        """Return ``(hide_votes, keep_votes)`` for a review item."""
        counts = dict(
            self.db.execute(
                select(ReviewVote.vote, func.count())
                .where(ReviewVote.review_queue_id == item_id)
                .group_by(ReviewVote.vote)
            ).all()
        )
        return int(counts.get(hide_value, 0)), int(counts.get(keep_value, 0))

    def review_voter_ids(self, item_id: int, value: str) -> list[int]:
        return list(
            self.db.scalars(
                select(ReviewVote.user_id).where(
                    ReviewVote.review_queue_id == item_id,
                    ReviewVote.vote == value,
                )
            )
        )
