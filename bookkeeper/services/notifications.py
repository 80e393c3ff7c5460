"""
Transient notifications ("toasts").

Services post short success/error messages here; the UI drains the
queue on every render and shows each message for `duration_ms`.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    message: str
    level: NotificationLevel
    created_at: datetime
    duration_ms: int

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(milliseconds=self.duration_ms)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Notifier:
    duration_ms: int = 1800
    clock: Callable[[], datetime] = _utcnow
    _pending: list[Notification] = field(default_factory=list)

    def success(self, message: str) -> Notification:
        return self._post(message, NotificationLevel.SUCCESS)

    def error(self, message: str) -> Notification:
        return self._post(message, NotificationLevel.ERROR)

    def _post(self, message: str, level: NotificationLevel) -> Notification:
        notification = Notification(message, level, self.clock(), self.duration_ms)
        self._pending.append(notification)
        return notification

    @property
    def pending(self) -> list[Notification]:
        """Notifications that have not expired yet, oldest first."""
        now = self.clock()
        return [n for n in self._pending if n.expires_at > now]

    def drain(self) -> list[Notification]:
        """Hand the unexpired notifications to the UI and forget all of them."""
        live = self.pending
        self._pending.clear()
        return live
