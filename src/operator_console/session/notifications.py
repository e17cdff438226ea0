from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Deque, List

logger = logging.getLogger("notifications")


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


@dataclass
class Notification:
    level: NotificationLevel
    message: str
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class NotificationCenter:
    """Transient, dismissible messages for the operator.

    Keeps the most recent ``max_items`` notifications and pushes each new one
    to subscribers (the terminal front-end prints them). Nothing here is
    fatal; a notification is purely informational.
    """

    def __init__(self, max_items: int = 20) -> None:
        self._items: Deque[Notification] = deque(maxlen=max_items)
        self._subscribers: List[Callable[[Notification], None]] = []

    @property
    def items(self) -> List[Notification]:
        return list(self._items)

    def subscribe(self, callback: Callable[[Notification], None]) -> None:
        self._subscribers.append(callback)

    def push(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self._items.append(notification)
        logger.log(_LOG_LEVELS[level], message)
        for callback in self._subscribers:
            callback(notification)
        return notification

    def info(self, message: str) -> Notification:
        return self.push(NotificationLevel.INFO, message)

    def success(self, message: str) -> Notification:
        return self.push(NotificationLevel.SUCCESS, message)

    def warning(self, message: str) -> Notification:
        return self.push(NotificationLevel.WARNING, message)

    def error(self, message: str) -> Notification:
        return self.push(NotificationLevel.ERROR, message)

    def dismiss(self, notification: Notification) -> None:
        try:
            self._items.remove(notification)
        except ValueError:
            pass
