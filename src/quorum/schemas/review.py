# src/quorum/schemas/review.py
"""Review queue Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from quorum.models import ReviewStatus
from quorum.services.content import ReviewType


class FlagCreate(BaseModel):
    """Schema for flagging content for review."""

    content_type: Literal["question", "answer", "comment"]
    content_id: int = Field(..., gt=0)
    review_type: Literal["spam_scam", "outdated"]


class ReviewVoteCreate(BaseModel):
    """Schema for voting on a review item."""

    review_queue_id: int = Field(..., gt=0)
    vote: str = Field(..., description="hide/keep for spam_scam, outdated/current for outdated")


class ReviewOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    review_queue_id: int
    status: ReviewStatus
    hide_votes: int
    keep_votes: int
    votes_needed: int
    vote_recorded: bool
    rewarded_user_ids: list[int] = Field(default_factory=list)


class QueueEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    content_type: str
    content_id: int
    review_type: ReviewType
    flagged_by: int
    flagged_at: datetime
    hide_votes: int
    keep_votes: int
    content_preview: str | None
    author_id: int | None
    user_vote: str | None


class ReviewUsageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    daily_limit: int
    reviewed_today: int
    remaining: int
    reset_at: datetime


class QueuePageResponse(BaseModel):
    """One page of a review queue with the caller's daily usage."""

    model_config = ConfigDict(from_attributes=True)

    review_type: ReviewType
    items: list[QueueEntryResponse]
    page: int
    per_page: int
    total: int
    total_pages: int
    user_reputation: int
    min_reputation: int
    usage: ReviewUsageResponse


class QueueStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    review_type: ReviewType
    pending: int
    min_reputation: int
    can_access: bool


class ReviewStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_reputation: int
    total_pending: int
    queues: list[QueueStatsResponse]


class ContentFlagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    content_type: str
    content_id: int
    flag_type: str
    review_queue_id: int | None
    is_active: bool
    created_at: datetime
