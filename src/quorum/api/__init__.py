# src/quorum/api/__init__.py
"""HTTP API for the Quorum moderation engine."""
