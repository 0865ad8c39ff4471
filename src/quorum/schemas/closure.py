# src/quorum/schemas/closure.py
"""Close, reopen and retag Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CloseVoteCreate(BaseModel):
    """Schema for casting a close vote."""

    reason_code: str = Field(..., min_length=1, max_length=64)
    details: str | None = Field(None, description="Required by reasons that ask for details")
    duplicate_of: int | None = Field(None, description="Target question for duplicate votes")


class CloseVoteResponse(BaseModel):
    """Schema returned after a close vote."""

    model_config = ConfigDict(from_attributes=True)

    question_id: int
    reason_code: str
    vote_count: int
    votes_needed: int
    closed: bool
    rewarded_user_ids: list[int] = Field(default_factory=list)


class CloseReasonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reason_key: str
    display_name: str
    description: str
    requires_details: bool


class CloseVoteCountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reason_key: str
    display_name: str
    vote_count: int
    votes_needed: int


class CloseStatusResponse(BaseModel):
    """Close-vote progress on a question plus the reason catalogue."""

    question_id: int
    is_closed: bool
    close_reason_code: str | None
    closed_at: datetime | None
    votes: list[CloseVoteCountResponse]
    reasons: list[CloseReasonResponse]


class HammerCreate(BaseModel):
    """Schema for a gold-badge hammer close."""

    action: Literal["duplicate", "spam", "off-topic", "off_topic"]
    duplicate_of: int | None = None
    reason: str | None = Field(None, max_length=2000)


class HammerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question_id: int
    reason_code: str
    closed_reason: str
    duplicate_of: int | None = None


class ReopenVoteCreate(BaseModel):
    reason: str | None = Field(None, max_length=2000)


class ReopenVoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question_id: int
    vote_count: int
    votes_needed: int
    reopened: bool
    rewarded_user_ids: list[int] = Field(default_factory=list)


class ReopenStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question_id: int
    is_closed: bool
    vote_count: int
    votes_needed: int
    user_has_voted: bool


class RetagRequest(BaseModel):
    """Schema for replacing a question's tags."""

    tags: list[str] = Field(..., min_length=1, max_length=5)
    reason: str | None = Field(None, max_length=500)


class RetagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question_id: int
    tags: list[str]
    revision_id: int
