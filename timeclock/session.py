"""
Work session state machine.

SessionController owns the signed-in user's single open time entry. Each
transition validates the current state locally, makes one store call and only
updates local state when that call succeeds. At most one transition may be in
flight at a time; a response that arrives after reset() is discarded.
"""
from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, NoReturn, Optional

from timeclock.announcer import Announcer, Priority
from timeclock.calculator import (
    DEFAULT_OVERTIME_THRESHOLD,
    elapsed_work_seconds,
    span_hours,
)
from timeclock.errors import ConflictError, StatusCategory, StoreError, ValidationError
from timeclock.gateway import StoreGateway
from timeclock.models import Result, TimeEntry, TimeEntryStatus, UserProfile
from timeclock.notifications import Level, NotificationCenter
from timeclock.observability.metrics import session_transitions_total
from timeclock.utils.dates import now_utc

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    ON_BREAK = "on_break"
    COMPLETED = "completed"


class SessionEvent(str, Enum):
    RESTORED = "restored"
    CLOCKED_IN = "clocked_in"
    BREAK_STARTED = "break_started"
    BREAK_ENDED = "break_ended"
    CLOCKED_OUT = "clocked_out"
    CLEARED = "cleared"


Listener = Callable[[SessionEvent, Optional[TimeEntry]], None]


class SessionController:
    def __init__(
        self,
        gateway: StoreGateway,
        announcer: Announcer,
        notifications: Optional[NotificationCenter] = None,
        clock: Callable[[], Any] = now_utc,
        overtime_threshold: float = DEFAULT_OVERTIME_THRESHOLD,
    ):
        self.gateway = gateway
        self.announcer = announcer
        self.notifications = notifications or NotificationCenter(announcer)
        self.clock = clock
        self.overtime_threshold = overtime_threshold
        self.profile: Optional[UserProfile] = None
        self.last_completed: Optional[TimeEntry] = None
        self._entry: Optional[TimeEntry] = None
        self._in_flight: Optional[str] = None
        self._generation = 0
        self._listeners: List[Listener] = []

    # State

    @property
    def entry(self) -> Optional[TimeEntry]:
        return self._entry

    @property
    def state(self) -> SessionState:
        if self._entry is None:
            return SessionState.INACTIVE
        if self._entry.status == TimeEntryStatus.ON_BREAK:
            return SessionState.ON_BREAK
        if self._entry.status == TimeEntryStatus.ACTIVE:
            return SessionState.ACTIVE
        return SessionState.COMPLETED

    @property
    def busy(self) -> bool:
        return self._in_flight is not None

    def elapsed_work_seconds(self, now=None) -> float:
        """Work time of the open session so far, 0 when there is none."""
        entry = self._entry
        if entry is None:
            return 0.0
        return elapsed_work_seconds(
            entry.clock_in, now or self.clock(), entry.break_start, entry.break_end
        )

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: SessionEvent, entry: Optional[TimeEntry]) -> None:
        for listener in self._listeners:
            listener(event, entry)

    # Loading

    async def refresh(self) -> None:
        """Load the profile and any open entry from the store."""
        profile_result = await self.gateway.get_user_profile()
        if profile_result.success:
            self.profile = profile_result.data
            if self.profile is not None:
                self.overtime_threshold = self.profile.overtime_threshold
        else:
            # The clock works without a profile; only report the problem.
            error = _to_error(profile_result)
            logger.warning(f"User profile not available: {error.message}")
            self.announcer.announce(f"Unable to load your profile. {error.message}", Priority.ASSERTIVE)
            self.notifications.report_store_error(error)

        generation = self._generation
        result = await self.gateway.get_active_time_entry()
        if generation != self._generation:
            logger.info("Discarding active entry loaded before reset")
            return
        if not result.success:
            self._fail("load your current session", result)
        self._entry = result.data
        if self._entry is not None:
            logger.info("Restored open session", extra={"entry_id": self._entry.id})
            self._emit(SessionEvent.RESTORED, self._entry)

    def reset(self) -> None:
        """Drop local session state, e.g. on sign out."""
        self._generation += 1
        self._entry = None
        self.profile = None
        self._in_flight = None
        self._emit(SessionEvent.CLEARED, None)

    # Transitions

    async def clock_in(self) -> Optional[TimeEntry]:
        self._require({SessionState.INACTIVE}, "clock in", "a session is already open")
        now = self.clock()
        entry = await self._transition(
            "clock_in",
            "clock in",
            self.gateway.create_time_entry({"clock_in": now, "status": TimeEntryStatus.ACTIVE}),
        )
        if entry is None:
            return None
        self._entry = entry
        self.announcer.announce("Clocked in successfully. Your work day has started.", Priority.ASSERTIVE)
        self._emit(SessionEvent.CLOCKED_IN, entry)
        return entry

    async def break_start(self) -> Optional[TimeEntry]:
        self._require({SessionState.ACTIVE}, "start a break", "you are not clocked in and working")
        current = self._entry
        if current.break_start is not None:
            # One break span per session.
            self._conflict("start a break", "you have already taken a break in this session")
        entry = await self._transition(
            "break_start",
            "start your break",
            self.gateway.update_time_entry(
                current.id, {"break_start": self.clock(), "status": TimeEntryStatus.ON_BREAK}
            ),
        )
        if entry is None:
            return None
        self._entry = entry
        self.announcer.announce("Break started. Timer paused.", Priority.ASSERTIVE)
        self._emit(SessionEvent.BREAK_STARTED, entry)
        return entry

    async def break_end(self) -> Optional[TimeEntry]:
        self._require({SessionState.ON_BREAK}, "end a break", "no break is in progress")
        current = self._entry
        entry = await self._transition(
            "break_end",
            "end your break",
            self.gateway.update_time_entry(
                current.id, {"break_end": self.clock(), "status": TimeEntryStatus.ACTIVE}
            ),
        )
        if entry is None:
            return None
        self._entry = entry
        self.announcer.announce("Break ended. Timer resumed.", Priority.ASSERTIVE)
        self._emit(SessionEvent.BREAK_ENDED, entry)
        return entry

    async def clock_out(self) -> Optional[TimeEntry]:
        self._require({SessionState.ACTIVE, SessionState.ON_BREAK}, "clock out", "you are not clocked in")
        current = self._entry
        now = self.clock()

        fields: Dict[str, Any] = {"clock_out": now, "status": TimeEntryStatus.COMPLETED}
        break_end = current.break_end
        if current.break_start is not None and (break_end is None or break_end < current.break_start):
            # Clocking out mid-break closes the break at the same instant.
            break_end = now
            fields["break_end"] = now

        total_hours = span_hours(current.clock_in, now, current.break_start, break_end)
        if total_hours <= 0:
            message = "Clock-out time must be after clock-in time"
            self.announcer.announce_form_error("clock_out", message)
            raise ValidationError("clock_out", message)
        fields["total_hours"] = round(total_hours, 4)

        entry = await self._transition(
            "clock_out", "clock out", self.gateway.update_time_entry(current.id, fields)
        )
        if entry is None:
            return None
        self._entry = None
        self.last_completed = entry
        self.announcer.announce(
            f"Clocked out successfully. Total hours worked: {total_hours:.2f} hours.",
            Priority.ASSERTIVE,
        )
        self._emit(SessionEvent.CLOCKED_OUT, entry)
        if total_hours > self.overtime_threshold:
            self.notifications.add(
                f"You worked {total_hours:.2f} hours today, which exceeds the overtime threshold.",
                Level.WARNING,
            )
        return entry

    # Helpers

    def _require(self, allowed, action: str, reason: str) -> None:
        if self._in_flight is not None:
            self._conflict(action, "another time clock action is still in progress")
        if self.state not in allowed:
            self._conflict(action, reason)

    def _conflict(self, action: str, reason: str) -> NoReturn:
        message = f"Cannot {action}: {reason}"
        logger.warning(f"Rejected {action} from state {self.state.value}: {reason}")
        self.announcer.announce(message, Priority.ASSERTIVE)
        raise ConflictError(message)

    async def _transition(self, name: str, action: str, call) -> Optional[TimeEntry]:
        """Await one store call; apply nothing on failure or after a reset."""
        generation = self._generation
        self._in_flight = name
        try:
            result: Result = await call
        finally:
            if generation == self._generation:
                self._in_flight = None

        if generation != self._generation:
            logger.info(f"Discarding late {name} response after session reset")
            return None
        if not result.success:
            self._fail(action, result)

        session_transitions_total.labels(transition=name).inc()
        logger.info(
            f"Session transition {name} succeeded",
            extra={"transition": name, "entry_id": result.data.id},
        )
        return result.data

    def _fail(self, action: str, result: Result) -> None:
        error = _to_error(result)
        self.announcer.announce(f"Failed to {action}. {error.message}", Priority.ASSERTIVE)
        self.notifications.report_store_error(error)
        raise error


def _to_error(result: Result) -> StoreError:
    return StoreError.from_category(
        result.error or "Unknown error",
        result.statusCategory or StatusCategory.OTHER,
        result.statusCode,
    )
