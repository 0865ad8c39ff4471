# src/quorum/models/user.py
"""SQLAlchemy model for platform users."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from quorum.db.session import Base
from quorum.db.time import utcnow


class User(Base):
    """A platform member.

    ``reputation`` is a cached running total of the user's
    :class:`~quorum.models.reputation.ReputationEntry` rows. It is only ever
    changed by :class:`~quorum.services.reputation.ReputationLedger`, in the
    same transaction that appends the matching entry.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    reputation: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
