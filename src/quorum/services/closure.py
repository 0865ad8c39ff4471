"""Closure state machine: close votes, the gold-badge hammer and auto-close."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from quorum.core.errors import (
    AlreadyVotedError,
    InvalidRequestError,
    NotFoundError,
    QuestionAlreadyClosedError,
)
from quorum.db.time import utcnow
from quorum.models import (
    CloseReason,
    CloseVote,
    ModerationLogEntry,
    Question,
    QuestionDuplicate,
    QuestionStatus,
    User,
)
from quorum.models.closure import LOG_ACTION_AUTO_CLOSE, LOG_ACTION_HAMMER_CLOSE
from quorum.models.reputation import REFERENCE_QUESTION
from quorum.services.badges import BadgeRegistry, SqlBadgeRegistry
from quorum.services.config import ClosureSettings, ModerationConfigStore
from quorum.services.locking import atomic, lock_row
from quorum.services.notifications import (
    NOTIFY_QUESTION_CLOSED,
    LoggingNotificationDispatcher,
    Notification,
    NotificationDispatcher,
    dispatch_all,
)
from quorum.services.privilege import ModerationAction, PrivilegeContext, PrivilegeGate
from quorum.services.reputation import (
    CONSENSUS_BONUS_POINTS,
    REASON_CLOSE_ACCEPTED,
    ReputationLedger,
)
from quorum.services.threshold import ThresholdResolver
from quorum.services.votes import VoteLedger

logger = logging.getLogger(__name__)

DUPLICATE_REASON = "duplicate"
AUTO_CLOSE_REASON = "low_quality"

# Hammer kinds and the close text each one records.
HAMMER_REASONS = {
    "duplicate": "Duplicate of question #{target}",
    "spam": "Spam or offensive content",
    "off_topic": "Off-topic or not relevant to the community",
}


@dataclass(frozen=True)
class CloseVoteOutcome:
    """Result of a successful close vote."""

    question_id: int
    reason_code: str
    vote_count: int
    votes_needed: int
    closed: bool
    rewarded_user_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class HammerOutcome:
    """Result of a gold-badge hammer close."""

    question_id: int
    reason_code: str
    closed_reason: str
    duplicate_of: int | None = None


@dataclass(frozen=True)
class CloseVoteCount:
    """Active close votes for one reason, for display."""

    reason_key: str
    display_name: str
    vote_count: int
    votes_needed: int


class ClosureService:
    """Drives a question from open to closed.

    A question closes when one close reason gathers ``close_votes_needed``
    active votes (votes for different reasons never add up), when a gold tag
    badge holder hammers it, or when auto-close fires on a low score. Only
    consensus closure pays the +2 bonus to its voters.
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

    def cast_close_vote(
        self,
        question_id: int,
        user_id: int,
        reason_code: str,
        details: str | None = None,
        duplicate_of: int | None = None,
    ) -> CloseVoteOutcome:
        """Record a close vote and close the question if its reason reaches the threshold."""
        notifications: list[Notification] = []
        with atomic(self.db):
            question = lock_row(self.db, Question, question_id, missing="Question not found")
            actor = _get_user(self.db, user_id)
            if question.is_closed:
                raise QuestionAlreadyClosedError()

            config = self.config.closure()
            self.gate.require(
                actor,
                ModerationAction.CLOSE_VOTE,
                self._context(question, config, config.min_reputation_close),
            )
            self._validate_reason(reason_code, details)
            target = self._validate_duplicate(question, reason_code, duplicate_of)

            if self.votes.has_active_close_vote(question.id, actor.id, reason_code):
                raise AlreadyVotedError("You have already voted to close this question for this reason")

            self.votes.record_close_vote(question.id, actor.id, reason_code, details, target)
            vote_count = self.votes.close_tally(question.id, reason_code)

            rewarded: tuple[int, ...] = ()
            closed = ThresholdResolver.reaches(vote_count, config.close_votes_needed)
            if closed:
                voters = self.votes.close_voters(question.id, reason_code)
                link_target = self.votes.duplicate_target(voters)
                self._close(question, reason_code, details, closed_by=actor.id)
                if reason_code == DUPLICATE_REASON and link_target is not None:
                    self._link_duplicate(question.id, link_target, actor.id)
                rewarded = tuple(
                    self.ledger.award_many(
                        (vote.user_id for vote in voters),
                        CONSENSUS_BONUS_POINTS,
                        REASON_CLOSE_ACCEPTED,
                        REFERENCE_QUESTION,
                        question.id,
                    )
                )
                notifications.append(
                    Notification(
                        user_id=question.user_id,
                        type=NOTIFY_QUESTION_CLOSED,
                        message=f"Your question was closed: {reason_code}",
                        actor_id=actor.id,
                        question_id=question.id,
                    )
                )

        if closed:
            logger.info(
                "Question %s closed by consensus (%s, %d votes)",
                question_id,
                reason_code,
                vote_count,
            )
        dispatch_all(self.notifier, notifications)
        return CloseVoteOutcome(
            question_id=question_id,
            reason_code=reason_code,
            vote_count=vote_count,
            votes_needed=config.close_votes_needed,
            closed=closed,
            rewarded_user_ids=rewarded,
        )

    def hammer_close(
        self,
        question_id: int,
        actor_id: int,
        reason_kind: str,
        duplicate_target_id: int | None = None,
        reason: str | None = None,
    ) -> HammerOutcome:
        """Close immediately on the authority of a gold tag badge.

        Writes a moderation-log entry and a single audit close-vote row; pays
        no consensus bonus.
        """
        kind = reason_kind.replace("-", "_")
        if kind not in HAMMER_REASONS:
            raise InvalidRequestError(
                "Invalid action. Must be 'duplicate', 'spam', or 'off-topic'"
            )

        notifications: list[Notification] = []
        with atomic(self.db):
            question = lock_row(self.db, Question, question_id, missing="Question not found")
            actor = _get_user(self.db, actor_id)
            if question.is_closed:
                raise QuestionAlreadyClosedError()

            config = self.config.closure()
            self.gate.require(actor, ModerationAction.HAMMER, self._context(question, config, 0))
            target = self._validate_duplicate(question, kind, duplicate_target_id)
            closed_reason = HAMMER_REASONS[kind].format(target=target)

            self.votes.record_close_vote(
                question.id, actor.id, kind, reason or closed_reason, target, is_hammer=True
            )
            self._close(question, kind, closed_reason, closed_by=actor.id)
            if target is not None:
                self._link_duplicate(question.id, target, actor.id)
            self.db.add(
                ModerationLogEntry(
                    user_id=actor.id,
                    action_type=LOG_ACTION_HAMMER_CLOSE,
                    target_type="question",
                    target_id=question.id,
                    reason=closed_reason,
                    metadata_={
                        "action": kind,
                        "duplicate_of": target,
                        "gold_badge_used": True,
                    },
                )
            )
            notifications.append(
                Notification(
                    user_id=question.user_id,
                    type=NOTIFY_QUESTION_CLOSED,
                    message=f'closed your question "{question.title}" as {kind}',
                    actor_id=actor.id,
                    question_id=question.id,
                )
            )

        logger.info("Question %s hammer-closed by user %s as %s", question_id, actor_id, kind)
        dispatch_all(self.notifier, notifications)
        return HammerOutcome(question_id, kind, closed_reason, target)

    def check_auto_close(self, question_id: int) -> bool:
        """Close the question if auto-close is on and its score is low enough.

        Call after a downvote lands on a question. Returns True if it closed.
        """
        notifications: list[Notification] = []
        with atomic(self.db):
            config = self.config.closure()
            if not config.auto_close_enabled:
                return False
            question = lock_row(self.db, Question, question_id, missing="Question not found")
            if question.is_closed or question.score > config.auto_close_score_threshold:
                return False

            score = question.score
            self._close(
                question,
                AUTO_CLOSE_REASON,
                f"Automatically closed due to low score ({score})",
                closed_by=None,
                auto=True,
            )
            self.db.add(
                ModerationLogEntry(
                    user_id=None,
                    action_type=LOG_ACTION_AUTO_CLOSE,
                    target_type="question",
                    target_id=question.id,
                    reason=AUTO_CLOSE_REASON,
                    metadata_={"score": score},
                )
            )
            notifications.append(
                Notification(
                    user_id=question.user_id,
                    type=NOTIFY_QUESTION_CLOSED,
                    message=(
                        "Your question was automatically closed due to low score "
                        f"({AUTO_CLOSE_REASON})"
                    ),
                    question_id=question.id,
                )
            )

        logger.info("Question %s auto-closed at score %d", question_id, score)
        dispatch_all(self.notifier, notifications)
        return True

    def expire_stale_close_votes(self, now: datetime | None = None) -> int:
        """Deactivate close votes older than the aging window on open questions."""
        with atomic(self.db):
            config = self.config.closure()
            cutoff = (now or utcnow()) - timedelta(days=config.close_vote_aging_days)
            open_questions = select(Question.id).where(Question.status == QuestionStatus.OPEN)
            result = self.db.execute(
                update(CloseVote)
                .where(
                    CloseVote.is_active.is_(True),
                    CloseVote.voted_at < cutoff,
                    CloseVote.question_id.in_(open_questions),
                )
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
            expired = result.rowcount or 0
        if expired:
            logger.info("Expired %d stale close votes", expired)
        return expired

    def close_vote_counts(self, question_id: int) -> list[CloseVoteCount]:
        """Return active close votes per reason, most-voted first."""
        if self.db.get(Question, question_id) is None:
            raise NotFoundError("Question not found")
        votes_needed = self.config.closure().close_votes_needed
        tallies = self.votes.close_tallies(question_id)
        names = {
            reason.reason_key: reason.display_name
            for reason in self.db.scalars(
                select(CloseReason).where(CloseReason.reason_key.in_(list(tallies)))
            )
        }
        counts = [
            CloseVoteCount(key, names.get(key, key), count, votes_needed)
            for key, count in tallies.items()
        ]
        return sorted(counts, key=lambda c: (-c.vote_count, c.reason_key))

    def close_reasons(self) -> Sequence[CloseReason]:
        """Return the active close-reason catalogue."""
        return self.db.scalars(
            select(CloseReason).where(CloseReason.is_active.is_(True)).order_by(CloseReason.id)
        ).all()

    # -- helpers -----------------------------------------------------------

    @staticmethod
    def _context(question: Question, config: ClosureSettings, min_reputation: int) -> PrivilegeContext:
        return PrivilegeContext(
            owner_id=question.user_id,
            tag_ids=tuple(question.tag_ids),
            min_reputation=min_reputation,
            hammer_enabled=config.gold_badge_hammer_enabled,
            subject="question",
        )

    def _validate_reason(self, reason_code: str, details: str | None) -> CloseReason:
        if not reason_code:
            raise InvalidRequestError("Close reason is required")
        reason = self.config.close_reason(reason_code)
        if reason is None:
            raise InvalidRequestError("Invalid close reason")
        if reason.requires_details and not (details and details.strip()):
            raise InvalidRequestError("This close reason requires additional details")
        return reason

    def _validate_duplicate(
        self,
        question: Question,
        reason_code: str,
        duplicate_of: int | None,
    ) -> int | None:
        if reason_code != DUPLICATE_REASON:
            return None
        if duplicate_of is None:
            raise InvalidRequestError("duplicate_of question ID is required for duplicate marking")
        if duplicate_of == question.id:
            raise InvalidRequestError("A question cannot be a duplicate of itself")
        if self.db.get(Question, duplicate_of) is None:
            raise NotFoundError("Duplicate target question not found")
        return duplicate_of

    def _close(
        self,
        question: Question,
        reason_code: str,
        details: str | None,
        *,
        closed_by: int | None,
        auto: bool = False,
    ) -> None:
        question.status = QuestionStatus.CLOSED
        question.close_reason_code = reason_code
        question.close_details = details
        question.closed_by = closed_by
        question.closed_at = utcnow()
        question.auto_closed = auto
        self.votes.deactivate_close_votes(question.id)
        self.db.flush()

    def _link_duplicate(self, question_id: int, target_id: int, marked_by: int | None) -> None:
        link = self.db.get(QuestionDuplicate, question_id)
        if link is None:
            link = QuestionDuplicate(question_id=question_id, duplicate_of_id=target_id)
            self.db.add(link)
        link.duplicate_of_id = target_id
        link.marked_by = marked_by
        link.marked_at = utcnow()
        self.db.flush()


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user
