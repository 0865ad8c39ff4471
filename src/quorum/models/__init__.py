# src/quorum/models/__init__.py
"""SQLAlchemy models for the Quorum moderation engine."""

from .badge import BadgeTier, UserTagBadge
from .closure import (
    ClosureConfigEntry,
    CloseReason,
    CloseVote,
    ModerationLogEntry,
    ReopenVote,
)
from .content import Answer, Comment
from .question import (
    Question,
    QuestionDuplicate,
    QuestionStatus,
    QuestionTag,
    Tag,
    TagRevision,
)
from .reputation import ReputationEntry
from .review import ContentFlag, ReviewQueueItem, ReviewStatus, ReviewThreshold, ReviewVote
from .user import User

__all__ = [
    "BadgeTier", "UserTagBadge",
    "ClosureConfigEntry", "CloseReason", "CloseVote", "ModerationLogEntry", "ReopenVote",
    "Answer", "Comment",
    "Question", "QuestionDuplicate", "QuestionStatus", "QuestionTag", "Tag", "TagRevision",
    "ReputationEntry",
    "ContentFlag", "ReviewQueueItem", "ReviewStatus", "ReviewThreshold", "ReviewVote",
    "User",
]
