"""
Error taxonomy for the time clock core.

Locally detected problems (bad input, invalid transitions) never reach the
store. Store failures carry a category so callers can tell an unreachable
server apart from a store that is reachable but misconfigured.
"""
from __future__ import annotations
from enum import Enum
from typing import Optional


class StatusCategory(str, Enum):
    """Coarse classification of a failed store call."""
    NETWORK = "network"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "notFound"
    OTHER = "other"


class TimeClockError(Exception):
    """Base exception for time clock errors."""
    code = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(TimeClockError):
    """Bad input detected locally, surfaced at the offending field."""
    code = "validation_error"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class ConflictError(TimeClockError):
    """A session transition was attempted from a state that does not allow it."""
    code = "conflict"


class StoreError(TimeClockError):
    """A store call failed."""
    code = "store_error"

    def __init__(
        self,
        message: str,
        category: StatusCategory = StatusCategory.OTHER,
        status_code: Optional[int] = None,
    ):
        self.category = category
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def from_category(
        cls,
        message: str,
        category: StatusCategory,
        status_code: Optional[int] = None,
    ) -> "StoreError":
        """Build the most specific subclass for a category."""
        error_cls = _CATEGORY_ERRORS.get(category, StoreError)
        return error_cls(message, category, status_code)


class NetworkError(StoreError):
    """No response reached the client; the user may retry."""
    code = "network_error"


class AccessDenied(StoreError):
    """The store refused the operation due to its access rules."""
    code = "access_denied"


class NotConfigured(StoreError):
    """The collection or record the operation needs does not exist."""
    code = "not_configured"


_CATEGORY_ERRORS = {
    StatusCategory.NETWORK: NetworkError,
    StatusCategory.FORBIDDEN: AccessDenied,
    StatusCategory.NOT_FOUND: NotConfigured,
}
