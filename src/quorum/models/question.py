# src/quorum/models/question.py
"""Models for questions, their tags and the records closure leaves behind."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quorum.db.session import Base
from quorum.db.time import utcnow


class QuestionStatus(str, enum.Enum):
    """Lifecycle of a question; only closure and reopen move between these."""

    OPEN = "open"
    CLOSED = "closed"


class Tag(Base):
    """A topic label attached to questions; tag badges are earned per tag."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)


class QuestionTag(Base):
    """Association between a question and one of its tags."""

    __tablename__ = "question_tags"

    question_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    )

    tag: Mapped[Tag] = relationship("Tag")


class Question(Base):
    """A question and its open/closed moderation state."""

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[QuestionStatus] = mapped_column(
        Enum(
            QuestionStatus,
            native_enum=False,
            length=16,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=QuestionStatus.OPEN,
    )
    close_reason_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    close_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    closed_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # True when the score-based auto-close fired rather than a person.
    auto_closed: Mapped[bool] = mapped_column(default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    tag_links: Mapped[list[QuestionTag]] = relationship(
        "QuestionTag",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_closed(self) -> bool:
        """Return True when the question is closed."""
        return self.status == QuestionStatus.CLOSED

    @property
    def tag_ids(self) -> list[int]:
        """Return the ids of the tags attached to this question."""
        return [link.tag_id for link in self.tag_links]


class QuestionDuplicate(Base):
    """Link from a question closed as duplicate to its canonical question."""

    __tablename__ = "question_duplicates"

    question_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        primary_key=True,
    )
    duplicate_of_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("questions.id"), nullable=False
    )
    marked_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    marked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class TagRevision(Base):
    """Audit row written whenever a question's tags are replaced."""

    __tablename__ = "tag_revisions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    tags_before: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags_after: Mapped[str] = mapped_column(Text, nullable=False)
    edit_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
