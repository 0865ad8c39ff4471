# src/quorum/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    questions_router,
    reputation_router,
    review_router,
)

__all__ = [
    "questions_router",
    "reputation_router",
    "review_router",
]
