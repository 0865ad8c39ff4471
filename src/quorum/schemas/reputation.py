# src/quorum/schemas/reputation.py
"""Reputation Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ReputationEntryResponse(BaseModel):
    """Schema for one reputation ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    points: int
    reason: str
    reference_type: str
    reference_id: int | None
    created_at: datetime


class ReputationHistoryResponse(BaseModel):
    user_id: int
    reputation: int
    entries: list[ReputationEntryResponse]
