from __future__ import annotations
import itertools
import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from timeclock.announcer import Announcer, Priority
from timeclock.errors import StatusCategory, StoreError
from timeclock.utils.dates import now_utc

logger = logging.getLogger(__name__)

NETWORK_BANNER = "network-error"
SETUP_BANNER = "setup-required"
MAX_NOTIFICATIONS = 50


class Level(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    id: int
    message: str
    level: Level = Level.INFO
    key: Optional[str] = None
    persistent: bool = False
    created_at: datetime = Field(default_factory=now_utc)


class NotificationCenter:
    """User-visible notices, newest first. Keyed notices exist at most once."""

    def __init__(self, announcer: Announcer, max_items: int = MAX_NOTIFICATIONS):
        self.announcer = announcer
        self.max_items = max_items
        self._items: List[Notification] = []
        self._ids = itertools.count(1)

    def add(
        self,
        message: str,
        level: Level = Level.INFO,
        key: Optional[str] = None,
        persistent: bool = False,
    ) -> Notification:
        if key is not None:
            existing = self.find(key)
            if existing is not None:
                return existing
        notification = Notification(
            id=next(self._ids), message=message, level=level, key=key, persistent=persistent
        )
        self._items.insert(0, notification)
        self._trim()
        logger.info(f"Notification ({level.value}): {message}")
        self.announcer.announce(message, Priority.ASSERTIVE)
        return notification

    def _trim(self) -> None:
        """Drop the oldest non-persistent notices beyond max_items."""
        index = len(self._items) - 1
        while len(self._items) > self.max_items and index >= 0:
            if not self._items[index].persistent:
                del self._items[index]
            index -= 1

    def find(self, key: str) -> Optional[Notification]:
        for item in self._items:
            if item.key == key:
                return item
        return None

    def dismiss(self, notification_id: int) -> bool:
        for index, item in enumerate(self._items):
            if item.id == notification_id:
                del self._items[index]
                return True
        return False

    def list(self) -> List[Notification]:
        return list(self._items)

    def report_store_error(self, error: StoreError) -> Optional[Notification]:
        """Raise the banner that matches a store failure, if it has one."""
        if error.category == StatusCategory.NETWORK:
            return self.add(
                "Network error: Unable to connect to server. Check your connection and reload to retry.",
                Level.ERROR,
                key=NETWORK_BANNER,
                persistent=True,
            )
        if error.category in (StatusCategory.FORBIDDEN, StatusCategory.NOT_FOUND):
            return self.add(
                f"Setup required: {error.message}. Ask an administrator to configure the time tracking store.",
                Level.WARNING,
                key=SETUP_BANNER,
                persistent=True,
            )
        return None
