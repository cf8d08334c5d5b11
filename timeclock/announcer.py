"""
Accessibility announcement collaborator.

The page owns speech and live regions; the core only tells it what to say.
QueuedAnnouncer buffers announcements and field errors so the page can poll
for them.
"""
from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Deque, Dict, List

from pydantic import BaseModel, Field

from timeclock.utils.dates import now_utc

logger = logging.getLogger(__name__)


class Priority(str, Enum):
    POLITE = "polite"
    ASSERTIVE = "assertive"


class Announcement(BaseModel):
    message: str
    priority: Priority = Priority.POLITE
    at: datetime = Field(default_factory=now_utc)


class Announcer(ABC):
    @abstractmethod
    def announce(self, message: str, priority: Priority = Priority.POLITE) -> None:
        ...

    def announce_form_error(self, field_id: str, message: str) -> None:
        self.announce(f"Error: {message}", Priority.ASSERTIVE)

    def clear_form_error(self, field_id: str) -> None:
        pass

    def announce_loading(self, region: str, is_loading: bool) -> None:
        self.announce("Loading content" if is_loading else "Content loaded")


class QueuedAnnouncer(Announcer):
    """Keeps the most recent announcements and the current field errors."""

    def __init__(self, maxlen: int = 100):
        self._queue: Deque[Announcement] = deque(maxlen=maxlen)
        self.form_errors: Dict[str, str] = {}

    def announce(self, message: str, priority: Priority = Priority.POLITE) -> None:
        logger.info(f"Announce ({Priority(priority).value}): {message}")
        self._queue.append(Announcement(message=message, priority=priority))

    def announce_form_error(self, field_id: str, message: str) -> None:
        self.form_errors[field_id] = message
        super().announce_form_error(field_id, message)

    def clear_form_error(self, field_id: str) -> None:
        self.form_errors.pop(field_id, None)

    def pending(self) -> List[Announcement]:
        return list(self._queue)

    def drain(self) -> List[Announcement]:
        """Return and forget everything announced since the last drain."""
        items = list(self._queue)
        self._queue.clear()
        return items
