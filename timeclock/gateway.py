"""
Remote store gateway.

Translates time clock operations into PocketBase calls and normalizes every
outcome into a Result. Failures are classified by StatusCategory so callers
can give distinct guidance for an unreachable server and a misconfigured one,
without ever seeing raw transport codes.
"""
from __future__ import annotations
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import pydantic

from timeclock.config import settings
from timeclock.errors import StatusCategory
from timeclock.filters import Filter
from timeclock.integrations.pocketbase_client import PocketBaseAPIError, PocketBaseClient
from timeclock.models import (
    AuthSession,
    EditRequest,
    RequestStatus,
    Result,
    TimeEntry,
    TimeEntryStatus,
    TimeOffRequest,
    UserProfile,
    UserRecord,
)
from timeclock.observability.metrics import store_errors_total
from timeclock.utils.dates import to_store_datetime

logger = logging.getLogger(__name__)

USERS = "users"
USER_PROFILES = "user_profiles"
TIME_ENTRIES = "time_entries"
EDIT_REQUESTS = "edit_requests"
TIME_OFF_REQUESTS = "time_off_requests"

NEWEST_FIRST = "-created"


def classify(status_code: int) -> StatusCategory:
    """Map a transport status to a category; 0 means no response arrived."""
    if not status_code:
        return StatusCategory.NETWORK
    if status_code == 403:
        return StatusCategory.FORBIDDEN
    if status_code == 404:
        return StatusCategory.NOT_FOUND
    return StatusCategory.OTHER


def describe(category: StatusCategory, collection: str, action: str, detail: str) -> str:
    if category == StatusCategory.NETWORK:
        return "Network error: Unable to connect to server"
    if category == StatusCategory.FORBIDDEN:
        return f"Access denied: the {collection} collection rules do not allow this operation"
    if category == StatusCategory.NOT_FOUND:
        return f"Not found: the {collection} collection or record does not exist"
    return f"Failed to {action}: {detail}"


def to_store_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize python values into the JSON the store expects."""
    out: Dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, datetime):
            value = to_store_datetime(value)
        elif isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        out[key] = value
    return out


class StoreGateway:
    """Typed facade over the PocketBase collections used by the time clock."""

    def __init__(self, client: Optional[PocketBaseClient] = None):
        self.client = client or PocketBaseClient()

    @property
    def current_user_id(self) -> Optional[str]:
        return self.client.auth.user_id

    async def _call(
        self,
        collection: str,
        action: str,
        operation: Callable[[], Awaitable[Any]],
    ) -> Result:
        try:
            return Result.ok(await operation())
        except PocketBaseAPIError as e:
            category = classify(e.status_code)
            store_errors_total.labels(category=category.value).inc()
            logger.warning(
                f"Store call failed: {action} ({e.code}, status={e.status_code})",
                extra={"collection": collection, "status_category": category.value},
            )
            return Result.fail(describe(category, collection, action, e.message), category, e.status_code)
        except pydantic.ValidationError as e:
            logger.error(
                f"Store returned a malformed {collection} record: {e}",
                extra={"collection": collection},
            )
            return Result.fail(f"Failed to {action}: unexpected data from server")

    def _require_user(self) -> Optional[Result]:
        if not self.current_user_id:
            return Result.fail("Not signed in", StatusCategory.OTHER, 401)
        return None

    # Authentication

    async def login(self, email: str, password: str) -> Result:
        async def op():
            auth = await self.client.authenticate(email, password, collection=USERS)
            return AuthSession(token=auth.token, user=UserRecord(**auth.record))

        result = await self._call(USERS, "sign in", op)
        if result.success:
            logger.info("Signed in", extra={"user_id": self.current_user_id})
        return result

    async def register(self, email: str, password: str, password_confirm: str, name: str) -> Result:
        """Create the account, then best-effort create its default profile."""
        async def op():
            record = await self.client.create_record(USERS, {
                "email": email,
                "password": password,
                "passwordConfirm": password_confirm,
                "name": name,
                "emailVisibility": True,
            })
            return UserRecord(**record)

        result = await self._call(USERS, "create account", op)
        if not result.success:
            return result

        user: UserRecord = result.data
        logger.info("User created", extra={"user_id": user.id})
        try:
            await self.client.create_record(USER_PROFILES, {
                "user": user.id,
                "pto_balance": settings.DEFAULT_PTO_BALANCE,
                "sick_balance": settings.DEFAULT_SICK_BALANCE,
                "role": settings.DEFAULT_ROLE,
                "overtime_threshold": settings.OVERTIME_THRESHOLD_HOURS,
            })
        except PocketBaseAPIError as e:
            logger.warning(
                f"Profile creation failed, continuing without one: {e.message}",
                extra={"user_id": user.id, "collection": USER_PROFILES},
            )
        return result

    def logout(self) -> None:
        """Forget the local auth token. Nothing is sent to the store."""
        logger.info("Signed out", extra={"user_id": self.current_user_id})
        self.client.auth.clear()

    def is_authenticated(self) -> bool:
        return self.client.auth.is_valid

    def current_user(self) -> Optional[UserRecord]:
        record = self.client.auth.record
        return UserRecord(**record) if record else None

    # Time entries

    async def create_time_entry(self, fields: Dict[str, Any]) -> Result:
        missing = self._require_user()
        if missing is not None:
            return missing
        body = to_store_fields({"user": self.current_user_id, **fields})

        async def op():
            return TimeEntry(**await self.client.create_record(TIME_ENTRIES, body))

        return await self._call(TIME_ENTRIES, "create time entry", op)

    async def update_time_entry(self, entry_id: str, fields: Dict[str, Any]) -> Result:
        body = to_store_fields(fields)

        async def op():
            return TimeEntry(**await self.client.update_record(TIME_ENTRIES, entry_id, body))

        return await self._call(TIME_ENTRIES, "update time entry", op)

    async def get_time_entries(self, filter: Optional[Filter] = None) -> Result:
        """Entries of the signed-in user matching filter, newest first."""
        missing = self._require_user()
        if missing is not None:
            return missing
        scoped = Filter.where("user", "=", self.current_user_id)
        if filter is not None:
            scoped = scoped & filter

        async def op():
            records = await self.client.query_records(
                TIME_ENTRIES, filter=scoped.to_expression(), sort=NEWEST_FIRST
            )
            return [TimeEntry(**r) for r in records]

        return await self._call(TIME_ENTRIES, "load time entries", op)

    async def get_active_time_entry(self) -> Result:
        """The newest open entry of the signed-in user, or None."""
        open_states = Filter.where("status", "=", TimeEntryStatus.ACTIVE, TimeEntryStatus.ON_BREAK)
        result = await self.get_time_entries(open_states)
        if result.success:
            result.data = result.data[0] if result.data else None
        return result

    # Requests

    async def create_edit_request(
        self, time_entry_id: str, reason: str, requested_changes: Dict[str, Any]
    ) -> Result:
        missing = self._require_user()
        if missing is not None:
            return missing
        body = {
            "user": self.current_user_id,
            "time_entry": time_entry_id,
            "reason": reason,
            "requested_changes": to_store_fields(requested_changes),
            "status": RequestStatus.PENDING.value,
        }

        async def op():
            return EditRequest(**await self.client.create_record(EDIT_REQUESTS, body))

        return await self._call(EDIT_REQUESTS, "submit edit request", op)

    async def create_time_off_request(self, fields: Dict[str, Any]) -> Result:
        missing = self._require_user()
        if missing is not None:
            return missing
        body = to_store_fields({
            "user": self.current_user_id,
            **fields,
            "status": RequestStatus.PENDING,
        })

        async def op():
            return TimeOffRequest(**await self.client.create_record(TIME_OFF_REQUESTS, body))

        return await self._call(TIME_OFF_REQUESTS, "submit time off request", op)

    async def get_time_off_requests(self) -> Result:
        missing = self._require_user()
        if missing is not None:
            return missing
        scoped = Filter.where("user", "=", self.current_user_id)

        async def op():
            records = await self.client.query_records(
                TIME_OFF_REQUESTS, filter=scoped.to_expression(), sort=NEWEST_FIRST
            )
            return [TimeOffRequest(**r) for r in records]

        return await self._call(TIME_OFF_REQUESTS, "load time off requests", op)

    # Profile

    async def get_user_profile(self) -> Result:
        """Profile of the signed-in user, or None when none exists."""
        missing = self._require_user()
        if missing is not None:
            return missing
        scoped = Filter.where("user", "=", self.current_user_id)

        async def op():
            records = await self.client.query_records(USER_PROFILES, filter=scoped.to_expression())
            return UserProfile(**records[0]) if records else None

        return await self._call(USER_PROFILES, "load user profile", op)
