"""Reopen state machine: a single pool of votes takes a closed question back to open."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from quorum.core.errors import AlreadyVotedError, NotFoundError, QuestionNotClosedError
from quorum.models import Question, QuestionStatus, User
from quorum.models.reputation import REFERENCE_QUESTION
from quorum.services.badges import BadgeRegistry, SqlBadgeRegistry
from quorum.services.config import ModerationConfigStore
from quorum.services.locking import atomic, lock_row
from quorum.services.notifications import (
    NOTIFY_QUESTION_REOPENED,
    LoggingNotificationDispatcher,
    Notification,
    NotificationDispatcher,
    dispatch_all,
)
from quorum.services.privilege import ModerationAction, PrivilegeContext, PrivilegeGate
from quorum.services.reputation import (
    CONSENSUS_BONUS_POINTS,
    REASON_REOPEN_SUCCESSFUL,
    ReputationLedger,
)
from quorum.services.threshold import ThresholdResolver
from quorum.services.votes import VoteLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReopenVoteOutcome:
    question_id: int
    vote_count: int
    votes_needed: int
    reopened: bool
    rewarded_user_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class ReopenStatus:
    """Read model for a question's reopen progress."""

    question_id: int
    is_closed: bool
    vote_count: int
    votes_needed: int
    user_has_voted: bool


class ReopenService:
    """Collects reopen votes on closed questions.

    Owners may vote to reopen their own question. Reopening clears the close
    metadata and deactivates every reopen vote so a later closure starts a
    fresh cycle.
    """

    def __init__(
        self,
        db: Session,
        *,
        badges: BadgeRegistry | None = None,
        notifier: NotificationDispatcher | None = None,
        config: ModerationConfigStore | None = None,
    ) -> None:
        self.db = db
        self.gate = PrivilegeGate(badges or SqlBadgeRegistry(db))
        self.notifier = notifier or LoggingNotificationDispatcher()
        self.config = config or ModerationConfigStore(db)
        self.votes = VoteLedger(db)
        self.ledger = ReputationLedger(db)

    def cast_reopen_vote(
        self,
        question_id: int,
        user_id: int,
        reason: str | None = None,
    ) -> ReopenVoteOutcome:
        notifications: list[Notification] = []
        with atomic(self.db):
            question = lock_row(self.db, Question, question_id, missing="Question not found")
            actor = self.db.get(User, user_id)
            if actor is None:
                raise NotFoundError("User not found")
            if not question.is_closed:
                raise QuestionNotClosedError()

            config = self.config.closure()
            self.gate.require(
                actor,
                ModerationAction.REOPEN_VOTE,
                PrivilegeContext(
                    owner_id=question.user_id,
                    tag_ids=tuple(question.tag_ids),
                    min_reputation=config.min_reputation_reopen,
                    subject="question",
                ),
            )
            if self.votes.has_active_reopen_vote(question.id, actor.id):
                raise AlreadyVotedError("You have already voted to reopen this question")

            self.votes.record_reopen_vote(question.id, actor.id, reason)
            vote_count = self.votes.reopen_tally(question.id)

            rewarded: tuple[int, ...] = ()
            reopened = ThresholdResolver.reaches(vote_count, config.reopen_votes_needed)
            if reopened:
                voter_ids = self.votes.reopen_voter_ids(question.id)
                question.status = QuestionStatus.OPEN
                question.close_reason_code = None
                question.close_details = None
                question.closed_by = None
                question.closed_at = None
                question.auto_closed = False
                self.votes.deactivate_reopen_votes(question.id)
                rewarded = tuple(
                    self.ledger.award_many(
                        voter_ids,
                        CONSENSUS_BONUS_POINTS,
                        REASON_REOPEN_SUCCESSFUL,
                        REFERENCE_QUESTION,
                        question.id,
                    )
                )
                notifications.append(
                    Notification(
                        user_id=question.user_id,
                        type=NOTIFY_QUESTION_REOPENED,
                        message="Your question was reopened by community vote",
                        actor_id=actor.id,
                        question_id=question.id,
                    )
                )

        if reopened:
            logger.info("Question %s reopened by consensus (%d votes)", question_id, vote_count)
        dispatch_all(self.notifier, notifications)
        return ReopenVoteOutcome(
            question_id=question_id,
            vote_count=vote_count,
            votes_needed=config.reopen_votes_needed,
            reopened=reopened,
            rewarded_user_ids=rewarded,
        )

    def reopen_status(self, question_id: int, user_id: int | None = None) -> ReopenStatus:
        question = self.db.get(Question, question_id)
        if question is None:
            raise NotFoundError("Question not found")
        user_has_voted = user_id is not None and self.votes.has_active_reopen_vote(
            question_id, user_id
        )
        return ReopenStatus(
            question_id=question_id,
            is_closed=question.is_closed,
            vote_count=self.votes.reopen_tally(question_id),
            votes_needed=self.config.closure().reopen_votes_needed,
            user_has_voted=user_has_voted,
        )
