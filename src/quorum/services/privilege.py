"""Privilege gate: who may perform which moderation action."""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from quorum.core.errors import (
    AuthorizationError,
    InsufficientBadgeError,
    InsufficientReputationError,
    SelfContentError,
)
from quorum.models import BadgeTier, User
from quorum.services.badges import BadgeRegistry, holds_any

logger = logging.getLogger(__name__)


class ModerationAction(str, enum.Enum):
    """Actions the gate can authorize."""

    CLOSE_VOTE = "close_vote"
    HAMMER = "hammer"
    RETAG = "retag"
    REOPEN_VOTE = "reopen_vote"
    REVIEW_FLAG = "review_flag"
    REVIEW_VOTE = "review_vote"


class DenialReason(str, enum.Enum):
    """Why the gate said no; lets callers pick a remediation message."""

    INSUFFICIENT_REPUTATION = "insufficient_reputation"
    INSUFFICIENT_BADGE = "insufficient_badge"
    SELF_CONTENT = "self_content"


_ACTION_PHRASES = {
    ModerationAction.CLOSE_VOTE: "vote to close questions",
    ModerationAction.REOPEN_VOTE: "vote to reopen questions",
    ModerationAction.REVIEW_FLAG: "flag content for review",
    ModerationAction.REVIEW_VOTE: "review this content",
}

# Actions a user may never take on their own content.
_SELF_DENIED = frozenset(
    {
        ModerationAction.CLOSE_VOTE,
        ModerationAction.HAMMER,
        ModerationAction.REVIEW_FLAG,
        ModerationAction.REVIEW_VOTE,
    }
)


@dataclass(frozen=True)
class PrivilegeContext:
    """What the gate needs to know about the target of an action.

    ``tag_ids`` are the content's tags for close/hammer, or the requested new
    tags for retag. ``min_reputation`` is the threshold for reputation-gated
    actions.
    """

    owner_id: int | None = None
    tag_ids: Sequence[int] = field(default_factory=tuple)
    min_reputation: int = 0
    hammer_enabled: bool = True
    subject: str | None = None


@dataclass(frozen=True)
class Authorization:
    """Outcome of a privilege check."""

    allowed: bool
    reason: DenialReason | None = None
    required_reputation: int | None = None
    required_tier: BadgeTier | None = None
    via_badge: bool = False

    @classmethod
    def allow(cls, *, via_badge: bool = False) -> Authorization:
        return cls(allowed=True, via_badge=via_badge)


class PrivilegeGate:
    """Pure authorization checks over reputation and tag badges."""

    def __init__(self, badges: BadgeRegistry) -> None:
        self.badges = badges

    def authorize(
        self,
        actor: User,
        action: ModerationAction,
        context: PrivilegeContext,
    ) -> Authorization:
        """Decide whether ``actor`` may perform ``action`` on ``context``."""
        is_owner = context.owner_id is not None and context.owner_id == actor.id

        if action in _SELF_DENIED and is_owner:
            return Authorization(allowed=False, reason=DenialReason.SELF_CONTENT)

        if action is ModerationAction.HAMMER:
            if context.hammer_enabled and holds_any(
                self.badges, actor.id, context.tag_ids, (BadgeTier.GOLD,)
            ):
                return Authorization.allow(via_badge=True)
            return Authorization(
                allowed=False,
                reason=DenialReason.INSUFFICIENT_BADGE,
                required_tier=BadgeTier.GOLD,
            )

        if action is ModerationAction.RETAG:
            if is_owner:
                return Authorization.allow()
            if holds_any(
                self.badges, actor.id, context.tag_ids, (BadgeTier.SILVER, BadgeTier.GOLD)
            ):
                return Authorization.allow(via_badge=True)
            return Authorization(
                allowed=False,
                reason=DenialReason.INSUFFICIENT_BADGE,
                required_tier=BadgeTier.SILVER,
            )

        if actor.reputation >= context.min_reputation:
            return Authorization.allow()

        # Gold holders in one of the question's tags may vote to close at any reputation.
        if (
            action is ModerationAction.CLOSE_VOTE
            and context.hammer_enabled
            and holds_any(self.badges, actor.id, context.tag_ids, (BadgeTier.GOLD,))
        ):
            return Authorization.allow(via_badge=True)

        return Authorization(
            allowed=False,
            reason=DenialReason.INSUFFICIENT_REPUTATION,
            required_reputation=context.min_reputation,
        )

    def require(
        self,
        actor: User,
        action: ModerationAction,
        context: PrivilegeContext,
    ) -> Authorization:
        """Like :meth:`authorize` but raise the typed denial on failure."""
        decision = self.authorize(actor, action, context)
        if decision.allowed:
            return decision

        logger.debug("Denied %s for user %s: %s", action.value, actor.id, decision.reason)
        if decision.reason is DenialReason.SELF_CONTENT:
            subject = context.subject or "content"
            raise SelfContentError(f"You cannot moderate your own {subject}")
        if decision.reason is DenialReason.INSUFFICIENT_BADGE:
            if action is ModerationAction.HAMMER:
                message = (
                    "You need an active Gold badge in one of this question's tags "
                    "to use the hammer"
                )
            else:
                message = (
                    "You need a Silver or Gold badge in one of these tags "
                    "to retag this question"
                )
            raise InsufficientBadgeError(decision.required_tier.value, message)  # type: ignore[union-attr]
        if decision.reason is DenialReason.INSUFFICIENT_REPUTATION:
            raise InsufficientReputationError(
                decision.required_reputation or 0,
                actor.reputation,
                _ACTION_PHRASES.get(action, action.value),
            )
        raise AuthorizationError("Not permitted")  # pragma: no cover
