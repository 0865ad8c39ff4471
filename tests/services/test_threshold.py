# tests/services/test_threshold.py
import pytest

from quorum.services.threshold import ReviewDirection, ThresholdResolver


@pytest.mark.parametrize(
    ("count", "needed", "expected"),
    [(4, 5, False), (5, 5, True), (6, 5, True), (1, 0, True), (0, 0, False)],
)
def test_reaches(count: int, needed: int, expected: bool) -> None:
    assert ThresholdResolver.reaches(count, needed) is expected


def test_review_below_threshold_does_not_resolve() -> None:
    assert ThresholdResolver.resolve_review(2, 2, 5) is None


def test_review_strict_majority_approves() -> None:
    resolution = ThresholdResolver.resolve_review(3, 2, 5)
    assert resolution is not None
    assert resolution.direction is ReviewDirection.APPROVE


def test_review_tie_at_threshold_rejects() -> None:
    resolution = ThresholdResolver.resolve_review(2, 2, 4)
    assert resolution is not None
    assert resolution.direction is ReviewDirection.REJECT


def test_review_keep_majority_rejects() -> None:
    resolution = ThresholdResolver.resolve_review(1, 4, 5)
    assert resolution is not None
    assert resolution.direction is ReviewDirection.REJECT
    assert (resolution.hide_votes, resolution.keep_votes) == (1, 4)
