"""Moderation services: consensus state machines over the relational store."""

from .closure import ClosureService
from .reopen import ReopenService
from .reputation import ReputationLedger
from .retag import RetagService
from .review import ReviewQueueService

__all__ = [
    "ClosureService",
    "ReopenService",
    "ReputationLedger",
    "RetagService",
    "ReviewQueueService",
]
