# src/quorum/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .questions import router as questions_router
from .reputation import router as reputation_router
from .review import router as review_router

__all__ = [
    "questions_router",
    "reputation_router",
    "review_router",
]
