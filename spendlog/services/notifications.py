"""User-visible, non-fatal notifications.

The ledger core never shows UI; it hands short messages to a Notifier. The
service keeps the most recent ones for ``GET /ledger/notifications``.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, List, Literal, Protocol

NotificationLevel = Literal["success", "error", "info"]

logger = logging.getLogger("spendlog.notifications")


@dataclass(frozen=True)
class Notification:
    message: str
    level: NotificationLevel
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier(Protocol):
    def notify(self, message: str, level: NotificationLevel = "info") -> None: ...


class LoggingNotifier:
    def notify(self, message: str, level: NotificationLevel = "info") -> None:
        log = logger.warning if level == "error" else logger.info
        log("[%s] %s", level, message)


class RecordingNotifier(LoggingNotifier):
    def __init__(self, maxlen: int = 50):
        self._items: Deque[Notification] = deque(maxlen=maxlen)

    def notify(self, message: str, level: NotificationLevel = "info") -> None:
        super().notify(message, level)
        self._items.append(Notification(message=message, level=level))

    def recent(self) -> List[Notification]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()
