"""User-visible notifications (success and error toasts)."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    """Notification severities."""

    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Notification:
    """A message to show to the user."""

    level: NotificationLevel
    message: str
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


NotificationListener = Callable[[Notification], None]


class Notifier:
    """Records notifications and forwards them to registered listeners."""

    def __init__(self, history_size: int = 50):
        self.history: list[Notification] = []
        self._history_size = history_size
        self._listeners: list[NotificationListener] = []

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def success(self, message: str) -> Notification:
        logger.info(message)
        return self._publish(Notification(level=NotificationLevel.SUCCESS, message=message))

    def error(self, message: str) -> Notification:
        logger.warning(f"Notifying user of error: {message}")
        return self._publish(Notification(level=NotificationLevel.ERROR, message=message))

    def _publish(self, notification: Notification) -> Notification:
        self.history.append(notification)
        self.history = self.history[-self._history_size :] if self._history_size else []
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("Notification listener failed")
        return notification
