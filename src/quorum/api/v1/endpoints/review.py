"""Review queue endpoints: flag, vote, list and stats."""

from __future__ import annotations

from fastapi import APIRouter, Query

from quorum.api.v1.dependencies import CurrentUserDep, SessionDep
from quorum.schemas import (
    ContentFlagResponse,
    FlagCreate,
    QueuePageResponse,
    ReviewOutcomeResponse,
    ReviewStatsResponse,
    ReviewVoteCreate,
)
from quorum.services import ReviewQueueService

router = APIRouter(prefix="/review", tags=["review"])


@router.post("/flag", response_model=ReviewOutcomeResponse)
async def flag_content(
    payload: FlagCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ReviewOutcomeResponse:
    """Flag content for review; the flag counts as the caller's first vote."""
    outcome = ReviewQueueService(db).flag(
        payload.content_type, payload.content_id, payload.review_type, current_user.id
    )
    return ReviewOutcomeResponse.model_validate(outcome)


@router.post("/vote", response_model=ReviewOutcomeResponse)
async def cast_review_vote(
    payload: ReviewVoteCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ReviewOutcomeResponse:
    outcome = ReviewQueueService(db).vote(payload.review_queue_id, current_user.id, payload.vote)
    return ReviewOutcomeResponse.model_validate(outcome)


@router.get("/queue", response_model=QueuePageResponse)
async def get_review_queue(
    current_user: CurrentUserDep,
    db: SessionDep,
    review_type: str = Query("spam_scam"),
    page: int = Query(1, ge=1),
) -> QueuePageResponse:
    """List pending review items, oldest first."""
    queue_page = ReviewQueueService(db).queue(current_user.id, review_type, page)
    return QueuePageResponse.model_validate(queue_page)


@router.get("/stats", response_model=ReviewStatsResponse)
async def get_review_stats(current_user: CurrentUserDep, db: SessionDep) -> ReviewStatsResponse:
    stats = ReviewQueueService(db).stats(current_user.id)
    return ReviewStatsResponse.model_validate(stats)


@router.get("/flags/{content_type}/{content_id}", response_model=list[ContentFlagResponse])
async def get_content_flags(
    content_type: str,
    content_id: int,
    db: SessionDep,
) -> list[ContentFlagResponse]:
    """Return active flags left on content by resolved reviews."""
    flags = ReviewQueueService(db).content_flags(content_type, content_id)
    return [ContentFlagResponse.model_validate(flag) for flag in flags]
