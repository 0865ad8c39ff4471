# src/quorum/models/badge.py
"""Per-tag badges, owned by the badge registry and read by the privilege gate."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from quorum.db.session import Base
from quorum.db.time import utcnow


class BadgeTier(str, enum.Enum):
    """Tag badge tiers; silver and gold unlock retag, only gold unlocks hammer."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class UserTagBadge(Base):
    """A badge a user holds in one tag.

    Badges are earned and refreshed by the badge scorer outside this engine;
    inactive (stale) badges grant no privileges.
    """

    __tablename__ = "user_tag_badges"
    __table_args__ = (Index("ix_user_tag_badges_user_tag", "user_id", "tag_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    tag_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False
    )
    badge_tier: Mapped[BadgeTier] = mapped_column(
        Enum(
            BadgeTier,
            native_enum=False,
            length=16,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
