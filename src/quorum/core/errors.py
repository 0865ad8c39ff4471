"""Error taxonomy for moderation operations.

Every failure a moderation operation can surface is one of these classes.
Each carries a stable ``code`` and an HTTP ``status_code`` so the API layer
can map it without inspecting messages, and a ``payload()`` with whatever the
actor needs to self-correct (required reputation, badge tier, reset time).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any


class ModerationError(RuntimeError):
    """Base exception raised for moderation failures."""

    code = "moderation_error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def payload(self) -> dict[str, Any]:
        """Return the JSON-ready body describing this failure."""
        return {"detail": self.message, "code": self.code}


class InvalidRequestError(ModerationError):
    """Raised when the request itself is malformed for this operation."""

    code = "invalid_request"
    status_code = 400


class AuthorizationError(ModerationError):
    """Raised when the actor lacks the standing to perform an action.

    Recoverable only by the actor gaining standing; never retried automatically.
    """

    code = "denied"
    status_code = 403


class InsufficientReputationError(AuthorizationError):
    """Raised when the actor's reputation is below the required minimum."""

    code = "denied_insufficient_reputation"

    def __init__(self, required: int, current: int, action: str) -> None:
        super().__init__(f"You need {required} reputation to {action}")
        self.required = required
        self.current = current

    def payload(self) -> dict[str, Any]:
        body = super().payload()
        body["required_reputation"] = self.required
        body["current_reputation"] = self.current
        return body


class InsufficientBadgeError(AuthorizationError):
    """Raised when the action needs a tag badge the actor does not hold."""

    code = "denied_insufficient_badge"

    def __init__(self, tier: str, message: str) -> None:
        super().__init__(message)
        self.tier = tier

    def payload(self) -> dict[str, Any]:
        body = super().payload()
        body["required_badge"] = self.tier
        body["privilege_required"] = True
        return body


class SelfContentError(AuthorizationError):
    """Raised when a user tries to moderate their own content."""

    code = "denied_self_content"


class NotFoundError(ModerationError):
    """Raised when the content or decision instance does not exist."""

    code = "not_found"
    status_code = 404


class ConflictError(ModerationError):
    """Raised when the request conflicts with the instance's current state."""

    code = "conflict"
    status_code = 409


class AlreadyVotedError(ConflictError):
    """Raised when the actor already holds an active vote on the instance."""

    code = "denied_already_voted"


class AlreadyResolvedError(ConflictError):
    """Raised when a review item has already been approved or rejected."""

    code = "already_resolved"


class QuestionAlreadyClosedError(ConflictError):
    """Raised when closing a question that is already closed."""

    code = "already_closed"

    def __init__(self, message: str = "Question is already closed") -> None:
        super().__init__(message)


class QuestionNotClosedError(ConflictError):
    """Raised when reopening a question that is open."""

    code = "not_closed"

    def __init__(self, message: str = "Question is not closed") -> None:
        super().__init__(message)


class RateLimitError(ModerationError):
    """Raised when the actor exhausted their daily review allowance."""

    code = "denied_rate_limited"
    status_code = 429

    def __init__(self, limit: int, reset_at: datetime, review_type: str) -> None:
        super().__init__(
            f"You have reached the daily limit of {limit} {review_type} reviews"
        )
        self.limit = limit
        self.reset_at = reset_at

    def payload(self) -> dict[str, Any]:
        body = super().payload()
        body["limit"] = self.limit
        body["reset_at"] = self.reset_at.isoformat()
        return body


class TransientStoreError(ModerationError):
    """Raised on lock contention or store failure; safe to retry with backoff."""

    code = "transient_store_error"
    status_code = 503

    def __init__(self, message: str = "The request could not be completed; please retry") -> None:
        super().__init__(message)
