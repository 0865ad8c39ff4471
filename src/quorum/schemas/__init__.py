# src/quorum/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .closure import (
    CloseReasonResponse,
    CloseStatusResponse,
    CloseVoteCountResponse,
    CloseVoteCreate,
    CloseVoteResponse,
    HammerCreate,
    HammerResponse,
    ReopenStatusResponse,
    ReopenVoteCreate,
    ReopenVoteResponse,
    RetagRequest,
    RetagResponse,
)
from .reputation import ReputationEntryResponse, ReputationHistoryResponse
from .review import (
    ContentFlagResponse,
    FlagCreate,
    QueueEntryResponse,
    QueuePageResponse,
    QueueStatsResponse,
    ReviewOutcomeResponse,
    ReviewStatsResponse,
    ReviewUsageResponse,
    ReviewVoteCreate,
)

__all__ = [
    "CloseReasonResponse", "CloseStatusResponse", "CloseVoteCountResponse",
    "CloseVoteCreate", "CloseVoteResponse", "HammerCreate", "HammerResponse",
    "ReopenStatusResponse", "ReopenVoteCreate", "ReopenVoteResponse",
    "RetagRequest", "RetagResponse",
    "ReputationEntryResponse", "ReputationHistoryResponse",
    "ContentFlagResponse", "FlagCreate", "QueueEntryResponse", "QueuePageResponse",
    "QueueStatsResponse", "ReviewOutcomeResponse", "ReviewStatsResponse",
    "ReviewUsageResponse", "ReviewVoteCreate",
]
