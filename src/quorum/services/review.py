"""Review queue engine: flag content, vote on it, resolve by majority."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quorum.core.errors import (
    AlreadyResolvedError,
    AlreadyVotedError,
    InsufficientReputationError,
    NotFoundError,
)
from quorum.db.time import utcnow
from quorum.models import ContentFlag, ReviewQueueItem, ReviewStatus, User
from quorum.models.reputation import REFERENCE_REVIEW
from quorum.services.badges import BadgeRegistry, SqlBadgeRegistry
from quorum.services.config import ModerationConfigStore, ReviewThresholdConfig
from quorum.services.content import (
    ContentType,
    ReviewType,
    content_owner_id,
    content_preview,
)
from quorum.services.locking import atomic, lock_row
from quorum.services.notifications import (
    NOTIFY_CONTENT_FLAGGED,
    LoggingNotificationDispatcher,
    Notification,
    NotificationDispatcher,
    dispatch_all,
)
from quorum.services.privilege import ModerationAction, PrivilegeContext, PrivilegeGate
from quorum.services.rate_limit import ReviewRateLimiter, ReviewUsage
from quorum.services.reputation import (
    CONSENSUS_BONUS_POINTS,
    REASON_REVIEW_CONSENSUS,
    REASON_REVIEW_TASK,
    REVIEW_TASK_POINTS,
    ReputationLedger,
)
from quorum.services.threshold import ReviewDirection, ReviewResolution, ThresholdResolver
from quorum.services.votes import VoteLedger

logger = logging.getLogger(__name__)

QUEUE_PAGE_SIZE = 20


@dataclass(frozen=True)
class ReviewOutcome:
    """Result of a flag or review vote."""

    review_queue_id: int
    status: ReviewStatus
    hide_votes: int
    keep_votes: int
    votes_needed: int
    vote_recorded: bool
    rewarded_user_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class QueueEntry:
    """One pending item as shown to a reviewer."""

    id: int
    content_type: str
    content_id: int
    review_type: str
    flagged_by: int
    flagged_at: datetime
    hide_votes: int
    keep_votes: int
    content_preview: str | None
    author_id: int | None
    user_vote: str | None


@dataclass(frozen=True)
class QueuePage:
    review_type: ReviewType
    items: list[QueueEntry]
    page: int
    per_page: int
    total: int
    user_reputation: int
    min_reputation: int
    usage: ReviewUsage

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.per_page) if self.per_page else 0


@dataclass(frozen=True)
class QueueStats:
    review_type: ReviewType
    pending: int
    min_reputation: int
    can_access: bool


@dataclass(frozen=True)
class ReviewStats:
    user_reputation: int
    queues: list[QueueStats] = field(default_factory=list)

    @property
    def total_pending(self) -> int:
        return sum(queue.pending for queue in self.queues)


class ReviewQueueService:
    """Flag, vote and resolve review items for questions, answers and comments.

    Each item resolves once ``votes_needed`` votes are in. Hide wins on a strict
    majority and leaves a :class:`ContentFlag` on the content; anything else,
    including a tie, rejects the flag. Voters on the winning side get the
    consensus bonus. Every recorded review vote pays the review-task point;
    the flagger's automatic vote does not, and flagging skips the daily limit.
    """

    def __init__(
        self,
        db: Session,
        *,
        badges: BadgeRegistry | None = None,
        notifier: NotificationDispatcher | None = None,
        config: ModerationConfigStore | None = None,
        limiter: ReviewRateLimiter | None = None,
    ) -> None:
        self.db = db
        self.gate = PrivilegeGate(badges or SqlBadgeRegistry(db))
        self.notifier = notifier or LoggingNotificationDispatcher()
        self.config = config or ModerationConfigStore(db)
        self.limiter = limiter or ReviewRateLimiter(db)
        self.votes = VoteLedger(db)
        self.ledger = ReputationLedger(db)

    def flag(
        self,
        content_type: str | ContentType,
        content_id: int,
        review_type: str | ReviewType,
        actor_id: int,
    ) -> ReviewOutcome:
        """Flag content for review and cast the flagger's own hide vote.

        Joins the pending item for the same content and review type when one
        exists.
        """
        ctype = ContentType.parse(content_type)
        rtype = ReviewType.parse(review_type)
        notifications: list[Notification] = []
        with atomic(self.db):
            actor = self.db.get(User, actor_id)
            if actor is None:
                raise NotFoundError("User not found")
            threshold = self.config.review_threshold(rtype)
            self.gate.require(
                actor,
                ModerationAction.REVIEW_FLAG,
                PrivilegeContext(
                    owner_id=content_owner_id(self.db, ctype, content_id),
                    min_reputation=threshold.min_reputation,
                    subject=ctype.value,
                ),
            )

            item = self.db.scalar(
                select(ReviewQueueItem)
                .where(
                    ReviewQueueItem.content_type == ctype.value,
                    ReviewQueueItem.content_id == content_id,
                    ReviewQueueItem.review_type == rtype.value,
                    ReviewQueueItem.status == ReviewStatus.PENDING,
                )
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            if item is None:
                item = ReviewQueueItem(
                    content_type=ctype.value,
                    content_id=content_id,
                    review_type=rtype.value,
                    flagged_by=actor.id,
                    status=ReviewStatus.PENDING,
                )
                self.db.add(item)
                self.db.flush()
                logger.debug("Opened review item %s for %s %s", item.id, ctype.value, content_id)
            elif self.votes.review_vote_for(item.id, actor.id) is not None:
                raise AlreadyVotedError("You have already flagged this content for review")

            # The automatic vote counts toward the flagger's daily usage, so it
            # takes the voter lock in the same item-then-user order as vote().
            lock_row(self.db, User, actor.id, missing="User not found")
            self.votes.upsert_review_vote(item.id, actor.id, rtype.hide_vote)
            outcome = self._tally_and_resolve(
                item, rtype, threshold, vote_recorded=True, notifications=notifications
            )

        logger.info(
            "User %s flagged %s %s for %s (item %s)",
            actor_id,
            ctype.value,
            content_id,
            rtype.value,
            outcome.review_queue_id,
        )
        dispatch_all(self.notifier, notifications)
        return outcome

    def vote(self, review_queue_id: int, actor_id: int, vote: str) -> ReviewOutcome:
        """Record or change a reviewer's vote on a pending item."""
        notifications: list[Notification] = []
        with atomic(self.db):
            item = lock_row(
                self.db, ReviewQueueItem, review_queue_id, missing="Review item not found"
            )
            if item.status != ReviewStatus.PENDING:
                raise AlreadyResolvedError("This review has already been completed")

            rtype = ReviewType(item.review_type)
            rtype.validate_vote(vote)
            # Locking the voter serializes their daily count with this vote.
            actor = lock_row(self.db, User, actor_id, missing="User not found")
            threshold = self.config.review_threshold(rtype)
            owner_id = content_owner_id(self.db, ContentType(item.content_type), item.content_id)
            self.gate.require(
                actor,
                ModerationAction.REVIEW_VOTE,
                PrivilegeContext(
                    owner_id=owner_id,
                    min_reputation=threshold.min_reputation,
                    subject=item.content_type,
                ),
            )

            # Changing an existing vote does not spend more of the allowance.
            if self.votes.review_vote_for(item.id, actor.id) is None:
                self.limiter.enforce(actor.id, rtype)

            change = self.votes.upsert_review_vote(item.id, actor.id, vote)
            if change.recorded:
                self.ledger.award(
                    actor.id, REVIEW_TASK_POINTS, REASON_REVIEW_TASK, REFERENCE_REVIEW, item.id
                )
                outcome = self._tally_and_resolve(
                    item, rtype, threshold, vote_recorded=True, notifications=notifications
                )
            else:
                outcome = ReviewOutcome(
                    review_queue_id=item.id,
                    status=item.status,
                    hide_votes=item.hide_votes,
                    keep_votes=item.keep_votes,
                    votes_needed=threshold.votes_needed,
                    vote_recorded=False,
                )

        dispatch_all(self.notifier, notifications)
        return outcome

    def queue(self, actor_id: int, review_type: str | ReviewType, page: int = 1) -> QueuePage:
        """List pending items of one review type, oldest first."""
        rtype = ReviewType.parse(review_type)
        actor = self.db.get(User, actor_id)
        if actor is None:
            raise NotFoundError("User not found")
        threshold = self.config.review_threshold(rtype)
        if actor.reputation < threshold.min_reputation:
            raise InsufficientReputationError(
                threshold.min_reputation, actor.reputation, "access this review queue"
            )

        page = max(page, 1)
        pending = (
            ReviewQueueItem.review_type == rtype.value,
            ReviewQueueItem.status == ReviewStatus.PENDING,
        )
        total = int(self.db.scalar(select(func.count(ReviewQueueItem.id)).where(*pending)) or 0)
        items = self.db.scalars(
            select(ReviewQueueItem)
            .where(*pending)
            .order_by(ReviewQueueItem.flagged_at, ReviewQueueItem.id)
            .limit(QUEUE_PAGE_SIZE)
            .offset((page - 1) * QUEUE_PAGE_SIZE)
        ).all()

        entries = []
        for item in items:
            own_vote = self.votes.review_vote_for(item.id, actor.id)
            content = self.db.get(ContentType(item.content_type).model, item.content_id)
            entries.append(
                QueueEntry(
                    id=item.id,
                    content_type=item.content_type,
                    content_id=item.content_id,
                    review_type=item.review_type,
                    flagged_by=item.flagged_by,
                    flagged_at=item.flagged_at,
                    hide_votes=item.hide_votes,
                    keep_votes=item.keep_votes,
                    content_preview=content_preview(content) if content is not None else None,
                    author_id=content.user_id if content is not None else None,
                    user_vote=own_vote.vote if own_vote is not None else None,
                )
            )

        return QueuePage(
            review_type=rtype,
            items=entries,
            page=page,
            per_page=QUEUE_PAGE_SIZE,
            total=total,
            user_reputation=actor.reputation,
            min_reputation=threshold.min_reputation,
            usage=self.limiter.usage(actor.id, rtype),
        )

    def stats(self, actor_id: int) -> ReviewStats:
        """Pending counts per review type and which queues the actor may open."""
        actor = self.db.get(User, actor_id)
        if actor is None:
            raise NotFoundError("User not found")
        counts = dict(
            self.db.execute(
                select(ReviewQueueItem.review_type, func.count(ReviewQueueItem.id))
                .where(ReviewQueueItem.status == ReviewStatus.PENDING)
                .group_by(ReviewQueueItem.review_type)
            ).all()
        )
        queues = []
        for rtype in ReviewType:
            threshold = self.config.review_threshold(rtype)
            queues.append(
                QueueStats(
                    review_type=rtype,
                    pending=int(counts.get(rtype.value, 0)),
                    min_reputation=threshold.min_reputation,
                    can_access=actor.reputation >= threshold.min_reputation,
                )
            )
        return ReviewStats(user_reputation=actor.reputation, queues=queues)

    def content_flags(self, content_type: str | ContentType, content_id: int) -> Sequence[ContentFlag]:
        """Return the active flags on a piece of content."""
        ctype = ContentType.parse(content_type)
        return self.db.scalars(
            select(ContentFlag)
            .where(
                ContentFlag.content_type == ctype.value,
                ContentFlag.content_id == content_id,
                ContentFlag.is_active.is_(True),
            )
            .order_by(ContentFlag.id)
        ).all()

    # -- resolution --------------------------------------------------------

    def _tally_and_resolve(
        self,
        item: ReviewQueueItem,
        rtype: ReviewType,
        threshold: ReviewThresholdConfig,
        *,
        vote_recorded: bool,
        notifications: list[Notification],
    ) -> ReviewOutcome:
        hide_votes, keep_votes = self.votes.review_tally(item.id, rtype.hide_vote, rtype.keep_vote)
        item.hide_votes = hide_votes
        item.keep_votes = keep_votes

        rewarded: tuple[int, ...] = ()
        resolution = ThresholdResolver.resolve_review(
            hide_votes, keep_votes, threshold.votes_needed
        )
        if resolution is not None:
            rewarded = self._apply(item, rtype, resolution, notifications)
        self.db.flush()

        return ReviewOutcome(
            review_queue_id=item.id,
            status=item.status,
            hide_votes=hide_votes,
            keep_votes=keep_votes,
            votes_needed=threshold.votes_needed,
            vote_recorded=vote_recorded,
            rewarded_user_ids=rewarded,
        )

    def _apply(
        self,
        item: ReviewQueueItem,
        rtype: ReviewType,
        resolution: ReviewResolution,
        notifications: list[Notification],
    ) -> tuple[int, ...]:
        item.resolved_at = utcnow()
        if resolution.direction is ReviewDirection.APPROVE:
            item.status = ReviewStatus.APPROVED
            winning_vote = rtype.hide_vote
            self._apply_flag(item, rtype)
            owner_id = content_owner_id(self.db, ContentType(item.content_type), item.content_id)
            notifications.append(
                Notification(
                    user_id=owner_id,
                    type=NOTIFY_CONTENT_FLAGGED,
                    message=f"Your {item.content_type} was marked {rtype.flag_type} after review",
                    question_id=item.content_id if item.content_type == "question" else None,
                )
            )
        else:
            item.status = ReviewStatus.REJECTED
            winning_vote = rtype.keep_vote

        rewarded = self.ledger.award_many(
            self.votes.review_voter_ids(item.id, winning_vote),
            CONSENSUS_BONUS_POINTS,
            REASON_REVIEW_CONSENSUS,
            REFERENCE_REVIEW,
            item.id,
        )
        logger.info(
            "Review item %s %s (%d/%d)",
            item.id,
            item.status.value,
            resolution.hide_votes,
            resolution.keep_votes,
        )
        return tuple(rewarded)

    def _apply_flag(self, item: ReviewQueueItem, rtype: ReviewType) -> None:
        flag = self.db.scalar(
            select(ContentFlag).where(
                ContentFlag.content_type == item.content_type,
                ContentFlag.content_id == item.content_id,
                ContentFlag.flag_type == rtype.flag_type,
            )
        )
        if flag is None:
            flag = ContentFlag(
                content_type=item.content_type,
                content_id=item.content_id,
                flag_type=rtype.flag_type,
            )
            self.db.add(flag)
        flag.is_active = True
        flag.review_queue_id = item.id
