"""
Request forms: manual time entry, time off, edit requests and sign-up.

Each submit clears the form's previous field errors, validates locally,
derives durations with the calculator and makes a single create call. Local
validation failures are announced at the offending field and never reach the
store.
"""
from __future__ import annotations
import logging
from datetime import datetime, time, timedelta
from typing import Iterable, NoReturn, Optional, Tuple

from timeclock.announcer import Announcer, Priority
from timeclock.calculator import inclusive_day_count, span_hours
from timeclock.config import settings
from timeclock.errors import StatusCategory, StoreError, ValidationError
from timeclock.gateway import StoreGateway
from timeclock.models import (
    AuthSession,
    EditRequest,
    EditRequestForm,
    LoginRequest,
    ManualEntryRequest,
    RegisterRequest,
    Result,
    TimeEntry,
    TimeEntryStatus,
    TimeOffFormRequest,
    TimeOffRequest,
    TimeOffType,
    UserRecord,
)
from timeclock.notifications import NotificationCenter
from timeclock.utils.dates import parse_iso_date

logger = logging.getLogger(__name__)

MANUAL_ENTRY_FIELDS = ("entry_date", "start_time", "end_time", "break_minutes")
TIME_OFF_FIELDS = ("type", "start_date", "end_date")
EDIT_REQUEST_FIELDS = ("entry_id", "reason", "clock_in", "clock_out")
REGISTER_FIELDS = ("name", "email", "password", "password_confirm", "form")
LOGIN_FIELDS = ("email", "password", "form")


def parse_wall_time(value: str) -> time:
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized time format: {value}")


class RequestForms:
    def __init__(
        self,
        gateway: StoreGateway,
        announcer: Announcer,
        notifications: Optional[NotificationCenter] = None,
    ):
        self.gateway = gateway
        self.announcer = announcer
        self.notifications = notifications or NotificationCenter(announcer)

    def _clear(self, fields: Iterable[str]) -> None:
        for field in fields:
            self.announcer.clear_form_error(field)

    def _invalid(self, field: str, message: str) -> NoReturn:
        self.announcer.announce_form_error(field, message)
        raise ValidationError(field, message)

    def _submit_failed(self, what: str, result: Result) -> NoReturn:
        error = StoreError.from_category(
            result.error or "Unknown error",
            result.statusCategory or StatusCategory.OTHER,
            result.statusCode,
        )
        self.announcer.announce(f"Failed to submit {what}", Priority.ASSERTIVE)
        self.notifications.report_store_error(error)
        raise error

    async def submit_manual_entry(self, form: ManualEntryRequest) -> TimeEntry:
        """Submit a past shift for approval; returns the created entry."""
        self._clear(MANUAL_ENTRY_FIELDS)
        if not form.entry_date:
            self._invalid("entry_date", "Please select a date")
        if not form.start_time:
            self._invalid("start_time", "Please enter a start time")
        if not form.end_time:
            self._invalid("end_time", "Please enter an end time")
        if form.break_minutes < 0:
            self._invalid("break_minutes", "Break duration cannot be negative")

        try:
            day = parse_iso_date(form.entry_date)
        except ValueError:
            self._invalid("entry_date", "Please enter a valid date")
        try:
            start = parse_wall_time(form.start_time)
        except ValueError:
            self._invalid("start_time", "Please enter a valid start time")
        try:
            end = parse_wall_time(form.end_time)
        except ValueError:
            self._invalid("end_time", "Please enter a valid end time")

        total_hours = span_hours(start, end, break_minutes=form.break_minutes)
        if total_hours <= 0:
            self._invalid("end_time", "End time must be after start time")

        clock_in = datetime.combine(day, start)
        clock_out = datetime.combine(day, end)
        if clock_out < clock_in:
            clock_out += timedelta(days=1)

        self.announcer.announce("Submitting time entry")
        result = await self.gateway.create_time_entry({
            "clock_in": clock_in,
            "clock_out": clock_out,
            "status": TimeEntryStatus.PENDING_APPROVAL,
            "total_hours": round(total_hours, 4),
            "category": form.category or None,
            "notes": form.notes or None,
        })
        if not result.success:
            self._submit_failed("time entry", result)

        self.announcer.announce("Time entry submitted successfully", Priority.ASSERTIVE)
        logger.info(
            f"Manual entry submitted for approval ({total_hours:.2f} h)",
            extra={"entry_id": result.data.id},
        )
        return result.data

    async def submit_time_off(self, form: TimeOffFormRequest) -> Tuple[TimeOffRequest, int]:
        """Request time off; returns the created request and its inclusive day count."""
        self._clear(TIME_OFF_FIELDS)
        if not form.type:
            self._invalid("type", "Please select a type of time off")
        try:
            kind = TimeOffType(form.type.lower())
        except ValueError:
            self._invalid("type", f"Unknown type of time off: {form.type}")
        if not form.start_date:
            self._invalid("start_date", "Please select a start date")
        if not form.end_date:
            self._invalid("end_date", "Please select an end date")

        try:
            start = parse_iso_date(form.start_date)
        except ValueError:
            self._invalid("start_date", "Please enter a valid start date")
        try:
            end = parse_iso_date(form.end_date)
        except ValueError:
            self._invalid("end_date", "Please enter a valid end date")

        try:
            days = inclusive_day_count(start, end)
        except ValidationError as e:
            self._invalid(e.field, e.message)

        self.announcer.announce("Submitting time off request")
        result = await self.gateway.create_time_off_request({
            "type": kind,
            "start_date": start,
            "end_date": end,
            "reason": form.reason or None,
        })
        if not result.success:
            self._submit_failed("time off request", result)

        self.announcer.announce("Time off request submitted successfully", Priority.ASSERTIVE)
        return result.data, days

    async def submit_edit_request(self, form: EditRequestForm) -> EditRequest:
        """Propose corrected clock times for a completed entry."""
        self._clear(EDIT_REQUEST_FIELDS)
        if not form.entry_id:
            self._invalid("entry_id", "No time entry selected")
        reason = (form.reason or "").strip()
        if not reason:
            self._invalid("reason", "Please explain why this entry needs a correction")

        changes = {}
        for field in ("clock_in", "clock_out"):
            value = getattr(form, field)
            if not value:
                continue
            try:
                changes[field] = datetime.fromisoformat(value)
            except ValueError:
                self._invalid(field, "Please enter a valid date and time")
        if "clock_in" in changes and "clock_out" in changes:
            # Naive values are local wall-clock time.
            if changes["clock_out"].astimezone() < changes["clock_in"].astimezone():
                self._invalid("clock_out", "Clock-out must be after clock-in")

        result = await self.gateway.create_edit_request(form.entry_id, reason, changes)
        if not result.success:
            self._submit_failed("edit request", result)

        self.announcer.announce("Edit request submitted successfully", Priority.ASSERTIVE)
        return result.data

    async def register(self, form: RegisterRequest) -> UserRecord:
        self._clear(REGISTER_FIELDS)
        if not form.name.strip():
            self._invalid("name", "Please enter your name")
        if form.password != form.password_confirm:
            self._invalid("password_confirm", "Passwords do not match")
        if len(form.password) < settings.MIN_PASSWORD_LENGTH:
            self._invalid(
                "password", f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters"
            )

        self.announcer.announce("Creating account, please wait")
        result = await self.gateway.register(form.email, form.password, form.password_confirm, form.name)
        if not result.success:
            self.announcer.announce_form_error("form", result.error or "Registration failed")
            raise StoreError.from_category(
                result.error or "Registration failed",
                result.statusCategory or StatusCategory.OTHER,
                result.statusCode,
            )
        self.announcer.announce("Account created successfully. Please log in.")
        return result.data

    async def login(self, form: LoginRequest) -> AuthSession:
        self._clear(LOGIN_FIELDS)
        self.announcer.announce("Logging in, please wait")
        result = await self.gateway.login(form.email, form.password)
        if not result.success:
            message = result.error or "Login failed. Please check your credentials."
            self.announcer.announce_form_error("form", message)
            raise StoreError.from_category(
                message, result.statusCategory or StatusCategory.OTHER, result.statusCode
            )
        self.announcer.announce("Login successful")
        return result.data
