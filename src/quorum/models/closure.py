# src/quorum/models/closure.py
"""Models backing the close/reopen consensus machinery."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from quorum.db.session import Base
from quorum.db.time import utcnow

LOG_ACTION_HAMMER_CLOSE = "hammer_close"
LOG_ACTION_AUTO_CLOSE = "auto_close"


class CloseReason(Base):
    """A reason a question may be closed for; close votes tally per reason."""

    __tablename__ = "close_reasons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reason_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    requires_details: Mapped[bool] = mapped_column(default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)


class ClosureConfigEntry(Base):
    """Key/value row overriding one closure threshold setting."""

    __tablename__ = "closure_config"

    config_key: Mapped[str] = mapped_column(String(64), primary_key=True)
    config_value: Mapped[str] = mapped_column(String(64), nullable=False)


class CloseVote(Base):
    """One user's vote to close a question for one reason.

    A user may vote for several distinct reasons but only once per reason.
    Votes are deactivated, never deleted, when the question closes or the vote
    ages out; a later cycle reactivates the same row.
    """

    __tablename__ = "question_close_votes"
    __table_args__ = (
        UniqueConstraint(
            "question_id", "user_id", "reason_code", name="uq_close_vote_question_user_reason"
        ),
        Index("ix_close_votes_question_reason", "question_id", "reason_code"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    reason_code: Mapped[str] = mapped_column(String(64), nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    duplicate_of_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("questions.id"), nullable=True
    )
    # Audit row for a gold-badge hammer rather than a counted vote.
    is_hammer: Mapped[bool] = mapped_column(default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    voted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ReopenVote(Base):
    """One user's vote to reopen a closed question; tallied as a single pool."""

    __tablename__ = "question_reopen_votes"
    __table_args__ = (
        UniqueConstraint("question_id", "user_id", name="uq_reopen_vote_question_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    voted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ModerationLogEntry(Base):
    """Audit trail for single-actor or automatic moderation actions."""

    __tablename__ = "moderation_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    action_type: Mapped[str] = mapped_column(String(32), nullable=False)
    target_type: Mapped[str] = mapped_column(String(16), nullable=False)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Column is named "metadata"; the attribute avoids shadowing Base.metadata.
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
