"""Reputation ledger: append-only entries plus the cached running total."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from quorum.core.errors import NotFoundError
from quorum.models import ReputationEntry, User

logger = logging.getLogger(__name__)

CONSENSUS_BONUS_POINTS = 2
REVIEW_TASK_POINTS = 1

REASON_CLOSE_ACCEPTED = "Close vote accepted"
REASON_REOPEN_SUCCESSFUL = "Reopen vote successful"
REASON_REVIEW_TASK = "Completed a review task"
REASON_REVIEW_CONSENSUS = "Review vote agreed with community consensus"


class ReputationLedger:
    """Writes reputation changes and reads totals and history.

    Every award appends a :class:`ReputationEntry` and bumps
    ``users.reputation`` in the caller's transaction. The bump is a single
    ``UPDATE ... SET reputation = reputation + :points`` so concurrent awards
    to the same user serialize on the row and never lose an increment. Totals
    are clamped at zero.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def award(
        self,
        user_id: int,
        points: int,
        reason: str,
        reference_type: str,
        reference_id: int | None = None,
    ) -> ReputationEntry:
        """Append an entry for ``user_id`` and update the cached total.

        Does not commit; callers own the transaction.
        """
        entry = ReputationEntry(
            user_id=user_id,
            points=points,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        self.db.add(entry)
        new_total = User.reputation + points
        total = self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(reputation=case((new_total < 0, 0), else_=new_total))
            .returning(User.reputation)
            .execution_options(synchronize_session=False)
        ).scalar_one_or_none()
        if total is None:
            raise NotFoundError("User not found")
        cached = self.db.identity_map.get(self.db.identity_key(User, user_id))
        if cached is not None:
            set_committed_value(cached, "reputation", total)
        self.db.flush()
        logger.debug("Awarded %+d to user %s (%s)", points, user_id, reason)
        return entry

    def award_many(
        self,
        user_ids: Iterable[int],
        points: int,
        reason: str,
        reference_type: str,
        reference_id: int | None = None,
    ) -> list[int]:
        """Award ``points`` once to each distinct user; return who was paid.

        Users are processed in ascending id order so concurrent fan-outs
        acquire row locks in the same order.
        """
        recipients = sorted(set(user_ids))
        for user_id in recipients:
            self.award(user_id, points, reason, reference_type, reference_id)
        return recipients

    def current_reputation(self, user_id: int) -> int:
        """Return the cached reputation total for ``user_id``."""
        reputation = self.db.scalar(select(User.reputation).where(User.id == user_id))
        if reputation is None:
            raise NotFoundError("User not found")
        return reputation

    def ledger_total(self, user_id: int) -> int:
        """Return the sum of the user's ledger entries, for reconciliation."""
        return int(
            self.db.scalar(
                select(func.coalesce(func.sum(ReputationEntry.points), 0)).where(
                    ReputationEntry.user_id == user_id
                )
            )
            or 0
        )

    def history(self, user_id: int, limit: int = 50) -> Sequence[ReputationEntry]:
        """Return the user's most recent entries, newest first."""
        return self.db.scalars(
            select(ReputationEntry)
            .where(ReputationEntry.user_id == user_id)
            .order_by(ReputationEntry.created_at.desc(), ReputationEntry.id.desc())
            .limit(limit)
        ).all()
