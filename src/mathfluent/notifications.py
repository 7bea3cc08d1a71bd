"""Transient user-facing notifications.

Action-level outcomes (solution ready, send failed, logged out) are reported
through a ``Notifier`` rather than raised, so callers decide how to show them.
"""

import logging
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class NotificationVariant(str, Enum):
    """Visual weight of a notification."""

    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    """A single toast-style notification."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    variant: NotificationVariant = Field(default=NotificationVariant.DEFAULT)


class Notifier(Protocol):
    """Anything that can display a notification."""

    def notify(self, notification: Notification) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes notifications to the log."""

    def notify(self, notification: Notification) -> None:
        level = logging.ERROR if notification.variant == NotificationVariant.DESTRUCTIVE else logging.INFO
        logger.log(level, "%s: %s", notification.title, notification.description)


class RecordingNotifier:
    """Notifier that keeps every notification in order.

    Used by the CLI to flush notifications after a command and by tests.
    """

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def titles(self) -> list[str]:
        return [n.title for n in self.notifications]

    def drain(self) -> list[Notification]:
        """Return and forget all recorded notifications."""
        drained, self.notifications = self.notifications, []
        return drained


def notify(
    notifier: Notifier | None,
    title: str,
    description: str = "",
    destructive: bool = False,
) -> None:
    """Send a notification if a notifier is attached."""
    if notifier is None:
        return
    variant = NotificationVariant.DESTRUCTIVE if destructive else NotificationVariant.DEFAULT
    notifier.notify(Notification(title=title, description=description, variant=variant))
