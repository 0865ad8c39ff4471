# src/quorum/models/review.py
"""Models for the generalized flag/review pipeline."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from quorum.db.session import Base
from quorum.db.time import utcnow


class ReviewStatus(str, enum.Enum):
    """Review item lifecycle; approved and rejected are terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewThreshold(Base):
    """Per-review-type minimum reputation and votes needed to resolve."""

    __tablename__ = "review_thresholds"

    review_type: Mapped[str] = mapped_column(String(32), primary_key=True)
    min_reputation: Mapped[int] = mapped_column(Integer, nullable=False)
    votes_needed: Mapped[int] = mapped_column(Integer, nullable=False)


class ReviewQueueItem(Base):
    """A piece of content under community review for one review type."""

    __tablename__ = "review_queue"
    __table_args__ = (
        # At most one pending item per (content, review type).
        Index(
            "uq_review_queue_pending_content",
            "content_type",
            "content_id",
            "review_type",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
        Index("ix_review_queue_type_status", "review_type", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_type: Mapped[str] = mapped_column(String(16), nullable=False)
    content_id: Mapped[int] = mapped_column(Integer, nullable=False)
    review_type: Mapped[str] = mapped_column(String(32), nullable=False)
    flagged_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    flagged_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    status: Mapped[ReviewStatus] = mapped_column(
        Enum(
            ReviewStatus,
            native_enum=False,
            length=16,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=ReviewStatus.PENDING,
    )
    # Cached tallies; recomputed from review_votes after every vote.
    hide_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    keep_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ReviewVote(Base):
    """One user's vote on a review item; upserted when the user changes it."""

    __tablename__ = "review_votes"
    __table_args__ = (
        UniqueConstraint("review_queue_id", "user_id", name="uq_review_vote_item_user"),
        Index("ix_review_votes_user_created_at", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    review_queue_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("review_queue.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    # hide/keep for spam_scam, outdated/current for outdated.
    vote: Mapped[str] = mapped_column(String(16), nullable=False)
    # First vote on the item; drives the daily review count and never moves.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    # Last time the vote value changed.
    voted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ContentFlag(Base):
    """Durable mark left on content once a review resolves against it."""

    __tablename__ = "content_flags"
    __table_args__ = (
        UniqueConstraint(
            "content_type", "content_id", "flag_type", name="uq_content_flag_content_type"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_type: Mapped[str] = mapped_column(String(16), nullable=False)
    content_id: Mapped[int] = mapped_column(Integer, nullable=False)
    # hidden_spam or outdated.
    flag_type: Mapped[str] = mapped_column(String(32), nullable=False)
    review_queue_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("review_queue.id"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
