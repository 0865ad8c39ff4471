"""Badge registry lookups used by the privilege gate."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from quorum.models import BadgeTier, UserTagBadge


class BadgeRegistry(Protocol):
    """Read-only view of the tag badges users hold."""

    def has_tag_badge(self, user_id: int, tag_id: int, tier: BadgeTier) -> bool:
        """Return True if the user holds an active badge of ``tier`` in ``tag_id``."""
        ...


class SqlBadgeRegistry:
    """Badge registry backed by the ``user_tag_badges`` table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def has_tag_badge(self, user_id: int, tag_id: int, tier: BadgeTier) -> bool:
        badge_id = self.db.scalar(
            select(UserTagBadge.id).where(
                UserTagBadge.user_id == user_id,
                UserTagBadge.tag_id == tag_id,
                UserTagBadge.badge_tier == tier,
                UserTagBadge.is_active.is_(True),
            ).limit(1)
        )
        return badge_id is not None


def holds_any(
    registry: BadgeRegistry,
    user_id: int,
    tag_ids: Iterable[int],
    tiers: Iterable[BadgeTier],
) -> bool:
    """Return True if the user holds any of ``tiers`` in any of ``tag_ids``."""
    wanted = tuple(tiers)
    return any(
        registry.has_tag_badge(user_id, tag_id, tier)
        for tag_id in tag_ids
        for tier in wanted
    )
