# src/quorum/models/reputation.py
"""Append-only reputation ledger rows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from quorum.db.session import Base
from quorum.db.time import utcnow

REFERENCE_QUESTION = "question"
REFERENCE_REVIEW = "review"


class ReputationEntry(Base):
    """One immutable reputation delta with the reason it was paid.

    Rows are never updated or deleted; ``users.reputation`` caches their sum.
    """

    __tablename__ = "reputation_history"
    __table_args__ = (Index("ix_reputation_history_user_id", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(200), nullable=False)
    reference_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reference_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
