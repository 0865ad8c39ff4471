"""Runtime moderation thresholds stored in the database.

The ``closure_config`` and ``review_thresholds`` tables are read-mostly and
edited by an admin path; missing rows fall back to :mod:`quorum.core.settings`.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from quorum.core.settings import Settings, settings
from quorum.models import ClosureConfigEntry, CloseReason, ReviewThreshold
from quorum.services.content import ReviewType


@dataclass(frozen=True)
class ClosureSettings:
    """Typed view of the closure configuration."""

    close_votes_needed: int
    reopen_votes_needed: int
    min_reputation_close: int
    min_reputation_reopen: int
    auto_close_score_threshold: int
    auto_close_enabled: bool
    gold_badge_hammer_enabled: bool
    close_vote_aging_days: int


@dataclass(frozen=True)
class ReviewThresholdConfig:
    """Minimum reputation and votes needed for one review type."""

    review_type: ReviewType
    min_reputation: int
    votes_needed: int


_INT_KEYS = (
    "close_votes_needed",
    "reopen_votes_needed",
    "min_reputation_close",
    "min_reputation_reopen",
    "auto_close_score_threshold",
    "close_vote_aging_days",
)
_BOOL_KEYS = ("auto_close_enabled", "gold_badge_hammer_enabled")

DEFAULT_CLOSE_REASONS: tuple[tuple[str, str, str, bool], ...] = (
    ("duplicate", "Duplicate", "This question has been asked before and already has an answer.", False),
    ("off_topic", "Off-topic", "This question is not about the community's subject.", False),
    ("spam", "Spam or offensive", "This question is spam, a scam, or offensive.", False),
    ("unclear", "Needs details or clarity", "It is unclear what is being asked.", False),
    ("too_broad", "Needs more focus", "This question asks about too many things at once.", False),
    ("opinion_based", "Opinion-based", "Answers would be mostly opinions.", False),
    ("low_quality", "Low quality", "Closed automatically because of a low score.", False),
    ("other", "Other", "Closed for a reason explained in the details.", True),
)


class ModerationConfigStore:
    """Reads closure and review thresholds for the current transaction."""

    def __init__(self, db: Session, defaults: Settings | None = None) -> None:
        self.db = db
        self.defaults = defaults or settings

    def closure(self) -> ClosureSettings:
        """Return the closure settings with stored overrides applied."""
        stored = {
            row.config_key: row.config_value
            for row in self.db.scalars(select(ClosureConfigEntry))
        }
        values: dict[str, int | bool] = {}
        for key in _INT_KEYS:
            raw = stored.get(key)
            values[key] = int(raw) if raw is not None else getattr(self.defaults, key)
        for key in _BOOL_KEYS:
            raw = stored.get(key)
            values[key] = raw.lower() == "true" if raw is not None else getattr(self.defaults, key)
        return ClosureSettings(**values)  # type: ignore[arg-type]

    def review_threshold(self, review_type: ReviewType) -> ReviewThresholdConfig:
        """Return the threshold for ``review_type``."""
        row = self.db.get(ReviewThreshold, review_type.value)
        if row is not None:
            return ReviewThresholdConfig(review_type, row.min_reputation, row.votes_needed)
        min_reputation, votes_needed = self.defaults.review_defaults[review_type.value]
        return ReviewThresholdConfig(review_type, min_reputation, votes_needed)

    def close_reason(self, reason_key: str) -> CloseReason | None:
        """Return the active close reason with ``reason_key`` if any."""
        return self.db.scalar(
            select(CloseReason).where(
                CloseReason.reason_key == reason_key,
                CloseReason.is_active.is_(True),
            )
        )


def seed_defaults(db: Session) -> None:
    """Insert default close reasons, closure config and review thresholds.

    Existing rows are left untouched. Does not commit.
    """
    existing_reasons = set(db.scalars(select(CloseReason.reason_key)))
    for key, name, description, requires_details in DEFAULT_CLOSE_REASONS:
        if key not in existing_reasons:
            db.add(
                CloseReason(
                    reason_key=key,
                    display_name=name,
                    description=description,
                    requires_details=requires_details,
                )
            )

    existing_keys = set(db.scalars(select(ClosureConfigEntry.config_key)))
    for key in _INT_KEYS + _BOOL_KEYS:
        if key not in existing_keys:
            value = getattr(settings, key)
            db.add(
                ClosureConfigEntry(
                    config_key=key,
                    config_value=str(value).lower() if isinstance(value, bool) else str(value),
                )
            )

    for review_type in ReviewType:
        if db.get(ReviewThreshold, review_type.value) is None:
            min_reputation, votes_needed = settings.review_defaults[review_type.value]
            db.add(
                ReviewThreshold(
                    review_type=review_type.value,
                    min_reputation=min_reputation,
                    votes_needed=votes_needed,
                )
            )
    db.flush()
