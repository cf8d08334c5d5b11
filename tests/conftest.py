"""
Shared fixtures: an in-memory stand-in for the store gateway and a manual clock.
"""
import itertools
from datetime import datetime, timedelta, timezone

import pytest

from timeclock.announcer import QueuedAnnouncer
from timeclock.errors import StatusCategory
from timeclock.models import (
    AuthSession,
    EditRequest,
    Result,
    TimeEntry,
    TimeOffRequest,
    UserRecord,
)
from timeclock.notifications import NotificationCenter
from timeclock.session import SessionController

START = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)


class ManualClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeGateway:
    """Records calls and answers from memory; failures are injected per method."""

    def __init__(self, clock=None):
        self.clock = clock or ManualClock()
        self.user_id = "user_1"
        self.calls = []
        self.failures = {}
        self.records = {}
        self.entries = []
        self.time_off = []
        self.profile = None
        self.active = None
        self.authenticated = True
        self._ids = itertools.count(1)

    @property
    def current_user_id(self):
        return self.user_id

    def fail(self, method, category=StatusCategory.NETWORK, message="Network error: Unable to connect to server", status=0):
        self.failures[method] = Result.fail(message, category, status)

    def _check(self, method, *args):
        self.calls.append((method, args))
        return self.failures.get(method)

    async def create_time_entry(self, fields):
        failure = self._check("create_time_entry", fields)
        if failure:
            return failure
        entry = TimeEntry(id=f"entry_{next(self._ids)}", user=self.user_id, created=self.clock(), **fields)
        self.records[entry.id] = entry
        return Result.ok(entry)

    async def update_time_entry(self, entry_id, fields):
        failure = self._check("update_time_entry", entry_id, fields)
        if failure:
            return failure
        entry = TimeEntry(**{**self.records[entry_id].model_dump(), **fields})
        self.records[entry_id] = entry
        return Result.ok(entry)

    async def get_time_entries(self, filter=None):
        failure = self._check("get_time_entries", filter)
        if failure:
            return failure
        return Result.ok(list(self.entries))

    async def get_active_time_entry(self):
        failure = self._check("get_active_time_entry")
        if failure:
            return failure
        return Result.ok(self.active)

    async def get_user_profile(self):
        failure = self._check("get_user_profile")
        if failure:
            return failure
        return Result.ok(self.profile)

    async def create_edit_request(self, time_entry_id, reason, requested_changes):
        failure = self._check("create_edit_request", time_entry_id, reason, requested_changes)
        if failure:
            return failure
        return Result.ok(EditRequest(
            id=f"edit_{next(self._ids)}",
            user=self.user_id,
            time_entry=time_entry_id,
            reason=reason,
            requested_changes=requested_changes,
        ))

    async def create_time_off_request(self, fields):
        failure = self._check("create_time_off_request", fields)
        if failure:
            return failure
        return Result.ok(TimeOffRequest(id=f"off_{next(self._ids)}", user=self.user_id, **fields))

    async def get_time_off_requests(self):
        failure = self._check("get_time_off_requests")
        if failure:
            return failure
        return Result.ok(list(self.time_off))

    async def login(self, email, password):
        failure = self._check("login", email)
        if failure:
            return failure
        return Result.ok(AuthSession(token="token", user=UserRecord(id=self.user_id, email=email)))

    async def register(self, email, password, password_confirm, name):
        failure = self._check("register", email, name)
        if failure:
            return failure
        return Result.ok(UserRecord(id=self.user_id, email=email, name=name))

    def logout(self):
        self.calls.append(("logout", ()))
        self.authenticated = False

    def is_authenticated(self):
        return self.authenticated

    def current_user(self):
        return UserRecord(id=self.user_id) if self.authenticated else None

    def count(self, method):
        return sum(1 for name, _ in self.calls if name == method)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def gateway(clock):
    return FakeGateway(clock)


@pytest.fixture
def announcer():
    return QueuedAnnouncer()


@pytest.fixture
def notifications(announcer):
    return NotificationCenter(announcer)


@pytest.fixture
def controller(gateway, announcer, notifications, clock):
    return SessionController(gateway, announcer, notifications, clock=clock)
