"""Threshold resolution rules for decision instances.

These are pure functions over tallies; callers hold the instance lock while
computing the tally and applying whatever these return.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ReviewDirection(str, enum.Enum):
    """Direction a review resolves in."""

    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True)
class ReviewResolution:
    """A resolved review: which side won and the final tally."""

    direction: ReviewDirection
    hide_votes: int
    keep_votes: int


class ThresholdResolver:
    """Decides whether and how a tallied decision instance resolves."""

    @staticmethod
    def reaches(count: int, votes_needed: int) -> bool:
        """Return True once ``count`` meets the threshold.

        Close votes pass a single reason's count here, never a sum across
        reasons; reopen votes pass the whole pool.
        """
        return count >= max(votes_needed, 1)

    @staticmethod
    def resolve_review(hide_votes: int, keep_votes: int, votes_needed: int) -> ReviewResolution | None:
        """Resolve a review item, or return None while below threshold.

        Hide wins only on a strict majority; a tie at or above the threshold
        resolves to reject.
        """
        if hide_votes + keep_votes < votes_needed:
            return None
        if hide_votes > keep_votes:
            direction = ReviewDirection.APPROVE
        else:
            direction = ReviewDirection.REJECT
        return ReviewResolution(direction, hide_votes, keep_votes)
