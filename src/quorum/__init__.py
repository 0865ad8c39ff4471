"""Quorum: community moderation consensus engine for a Q&A platform."""

__version__ = "0.1.0"
