"""
Tests for the request forms: manual entries, time off, edit requests and sign-up.
"""
from datetime import date, datetime

import pytest

from timeclock.errors import NetworkError, StatusCategory, StoreError, ValidationError
from timeclock.forms import RequestForms, parse_wall_time
from timeclock.models import (
    EditRequestForm,
    LoginRequest,
    ManualEntryRequest,
    RegisterRequest,
    RequestStatus,
    TimeEntryStatus,
    TimeOffFormRequest,
    TimeOffType,
)


@pytest.fixture
def forms(gateway, announcer, notifications):
    return RequestForms(gateway, announcer, notifications)


@pytest.mark.asyncio
async def test_manual_overnight_entry(forms, gateway):
    """A 22:00 to 06:00 shift with a 30 minute break is 7.5 hours ending the next day."""
    entry = await forms.submit_manual_entry(ManualEntryRequest(
        entry_date="2024-03-01", start_time="22:00", end_time="06:00", break_minutes=30,
    ))

    assert entry.total_hours == pytest.approx(7.5)
    assert entry.status == TimeEntryStatus.PENDING_APPROVAL
    assert entry.clock_in == datetime(2024, 3, 1, 22, 0)
    assert entry.clock_out == datetime(2024, 3, 2, 6, 0)
    assert gateway.count("create_time_entry") == 1


@pytest.mark.asyncio
async def test_manual_entry_same_day(forms):
    entry = await forms.submit_manual_entry(ManualEntryRequest(
        entry_date="2024-03-01", start_time="09:00", end_time="17:30", notes="Site visit",
    ))
    assert entry.total_hours == pytest.approx(8.5)
    assert entry.notes == "Site visit"


@pytest.mark.asyncio
async def test_manual_entry_break_longer_than_shift(forms, gateway, announcer):
    """A break that swallows the whole shift is rejected at the end time field."""
    with pytest.raises(ValidationError) as exc_info:
        await forms.submit_manual_entry(ManualEntryRequest(
            entry_date="2024-03-01", start_time="09:00", end_time="09:30", break_minutes=60,
        ))

    assert exc_info.value.field == "end_time"
    assert exc_info.value.message == "End time must be after start time"
    assert announcer.form_errors["end_time"] == "End time must be after start time"
    assert gateway.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("form, field", [
    (ManualEntryRequest(start_time="09:00", end_time="17:00"), "entry_date"),
    (ManualEntryRequest(entry_date="2024-03-01", end_time="17:00"), "start_time"),
    (ManualEntryRequest(entry_date="2024-03-01", start_time="09:00"), "end_time"),
    (ManualEntryRequest(entry_date="2024-03-01", start_time="9am", end_time="17:00"), "start_time"),
    (ManualEntryRequest(entry_date="03/01/2024", start_time="09:00", end_time="17:00"), "entry_date"),
    (ManualEntryRequest(entry_date="2024-03-01", start_time="09:00", end_time="17:00", break_minutes=-5), "break_minutes"),
])
async def test_manual_entry_field_errors(forms, gateway, form, field):
    with pytest.raises(ValidationError) as exc_info:
        await forms.submit_manual_entry(form)
    assert exc_info.value.field == field
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_resubmit_clears_previous_field_errors(forms, announcer):
    with pytest.raises(ValidationError):
        await forms.submit_manual_entry(ManualEntryRequest(entry_date="2024-03-01", start_time="09:00"))
    assert "end_time" in announcer.form_errors

    await forms.submit_manual_entry(ManualEntryRequest(
        entry_date="2024-03-01", start_time="09:00", end_time="10:00",
    ))
    assert announcer.form_errors == {}


@pytest.mark.asyncio
async def test_manual_entry_store_failure(forms, gateway, notifications, announcer):
    gateway.fail("create_time_entry")

    with pytest.raises(NetworkError):
        await forms.submit_manual_entry(ManualEntryRequest(
            entry_date="2024-03-01", start_time="09:00", end_time="10:00",
        ))

    assert notifications.find("network-error") is not None
    assert "Failed to submit time entry" in [a.message for a in announcer.pending()]


@pytest.mark.asyncio
async def test_time_off_counts_days_inclusively(forms, gateway):
    request, days = await forms.submit_time_off(TimeOffFormRequest(
        type="pto", start_date="2024-01-01", end_date="2024-01-03", reason="Family trip",
    ))

    assert days == 3
    assert request.type == TimeOffType.PTO
    assert request.start_date == date(2024, 1, 1)
    assert request.status == RequestStatus.PENDING


@pytest.mark.asyncio
async def test_time_off_single_day(forms):
    _, days = await forms.submit_time_off(TimeOffFormRequest(
        type="Sick", start_date="2024-01-05", end_date="2024-01-05",
    ))
    assert days == 1


@pytest.mark.asyncio
async def test_time_off_reversed_range(forms, gateway, announcer):
    with pytest.raises(ValidationError) as exc_info:
        await forms.submit_time_off(TimeOffFormRequest(
            type="pto", start_date="2024-01-03", end_date="2024-01-01",
        ))
    assert exc_info.value.field == "end_date"
    assert announcer.form_errors["end_date"] == "End date must be after start date"
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_time_off_unknown_type(forms):
    with pytest.raises(ValidationError) as exc_info:
        await forms.submit_time_off(TimeOffFormRequest(
            type="sabbatical", start_date="2024-01-01", end_date="2024-01-02",
        ))
    assert exc_info.value.field == "type"


@pytest.mark.asyncio
async def test_edit_request_with_changes(forms, gateway):
    request = await forms.submit_edit_request(EditRequestForm(
        entry_id="entry_4",
        reason="  Forgot to clock out  ",
        clock_out="2024-03-01T17:00",
    ))

    assert request.time_entry == "entry_4"
    assert request.reason == "Forgot to clock out"
    assert request.requested_changes == {"clock_out": datetime(2024, 3, 1, 17, 0)}
    assert request.status == RequestStatus.PENDING


@pytest.mark.asyncio
async def test_edit_request_requires_reason(forms, gateway):
    with pytest.raises(ValidationError) as exc_info:
        await forms.submit_edit_request(EditRequestForm(entry_id="entry_4", reason="   "))
    assert exc_info.value.field == "reason"
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_edit_request_rejects_reversed_times(forms):
    with pytest.raises(ValidationError) as exc_info:
        await forms.submit_edit_request(EditRequestForm(
            entry_id="entry_4",
            reason="Wrong times",
            clock_in="2024-03-01T17:00",
            clock_out="2024-03-01T09:00",
        ))
    assert exc_info.value.field == "clock_out"


@pytest.mark.asyncio
async def test_register_validates_passwords(forms, gateway):
    with pytest.raises(ValidationError) as exc_info:
        await forms.register(RegisterRequest(
            name="Sam", email="sam@example.com", password="longpassword", password_confirm="different1",
        ))
    assert exc_info.value.field == "password_confirm"

    with pytest.raises(ValidationError) as exc_info:
        await forms.register(RegisterRequest(
            name="Sam", email="sam@example.com", password="short", password_confirm="short",
        ))
    assert exc_info.value.field == "password"
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_register_success(forms, gateway):
    user = await forms.register(RegisterRequest(
        name="Sam", email="sam@example.com", password="longpassword", password_confirm="longpassword",
    ))
    assert user.email == "sam@example.com"
    assert gateway.count("register") == 1


@pytest.mark.asyncio
async def test_login_failure_is_a_form_error(forms, gateway, announcer):
    gateway.fail("login", StatusCategory.OTHER, "Failed to authenticate: Invalid credentials", 400)

    with pytest.raises(StoreError) as exc_info:
        await forms.login(LoginRequest(email="sam@example.com", password="nope"))

    assert exc_info.value.status_code == 400
    assert announcer.form_errors["form"] == "Failed to authenticate: Invalid credentials"


def test_parse_wall_time():
    assert parse_wall_time("06:30").hour == 6
    assert parse_wall_time("23:15:10").second == 10
    with pytest.raises(ValueError):
        parse_wall_time("25:00")


@pytest.mark.asyncio
async def test_edit_request_mixed_offset_and_local_times(forms, gateway):
    """An offset-aware time and a local wall-clock time are compared as instants."""
    request = await forms.submit_edit_request(EditRequestForm(
        entry_id="entry_4",
        reason="Wrong times",
        clock_in="2024-01-01T01:00:00+00:00",
        clock_out="2024-01-01T23:00:00",
    ))
    assert set(request.requested_changes) == {"clock_in", "clock_out"}

    with pytest.raises(ValidationError) as exc_info:
        await forms.submit_edit_request(EditRequestForm(
            entry_id="entry_4",
            reason="Wrong times",
            clock_in="2024-01-02T23:00:00+00:00",
            clock_out="2024-01-01T01:00:00",
        ))
    assert exc_info.value.field == "clock_out"
    assert gateway.count("create_edit_request") == 1
