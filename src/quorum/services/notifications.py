"""Fire-and-forget notifications emitted when a decision resolves."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

NOTIFY_QUESTION_CLOSED = "question_closed"
NOTIFY_QUESTION_REOPENED = "question_reopened"
NOTIFY_CONTENT_FLAGGED = "content_flagged"


@dataclass(frozen=True)
class Notification:
    """A message for one user about a moderation outcome on their content."""

    user_id: int
    type: str
    message: str
    actor_id: int | None = None
    question_id: int | None = None


class NotificationDispatcher(Protocol):
    """Delivers notifications; delivery mechanics live outside the engine."""

    def dispatch(self, notification: Notification) -> None:
        ...


class LoggingNotificationDispatcher:
    """Default dispatcher that only records the notification in the log."""

    def dispatch(self, notification: Notification) -> None:
        logger.info(
            "Notify user %s [%s]: %s",
            notification.user_id,
            notification.type,
            notification.message,
        )


def dispatch_all(dispatcher: NotificationDispatcher, notifications: list[Notification]) -> None:
    """Send notifications after commit; failures are logged, never raised."""
    for notification in notifications:
        try:
            dispatcher.dispatch(notification)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to dispatch %s notification to user %s: %s",
                notification.type,
                notification.user_id,
                exc,
            )
