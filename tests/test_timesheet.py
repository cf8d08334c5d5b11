"""
Tests for timesheet periods and summaries.
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from timeclock.errors import ValidationError
from timeclock.models import TimeEntry, TimeEntryStatus, TimeOffRequest, TimeOffType
from timeclock.timesheet import Period, day_start, period_filter, summarize, time_off_rows

NOW = datetime(2024, 3, 6, 15, 0, tzinfo=timezone.utc)


def entry(hours, break_minutes=0, **kwargs):
    clock_in = NOW - timedelta(hours=hours + break_minutes / 60)
    fields = dict(
        id=f"e{hours}",
        user="u1",
        clock_in=clock_in,
        clock_out=NOW,
        status=TimeEntryStatus.COMPLETED,
        total_hours=hours,
    )
    if break_minutes:
        fields["break_start"] = clock_in + timedelta(hours=1)
        fields["break_end"] = clock_in + timedelta(hours=1, minutes=break_minutes)
    fields.update(kwargs)
    return TimeEntry(**fields)


def test_summary_overtime_is_per_entry():
    summary = summarize([entry(6), entry(6)], 8)
    assert summary.total_hours == 12
    assert summary.regular_hours == 12
    assert summary.overtime_hours == 0
    assert summary.entry_count == 2


def test_summary_with_overtime_and_breaks():
    summary = summarize([entry(9.5, break_minutes=30), entry(4)], 8)
    assert summary.total_hours == pytest.approx(13.5)
    assert summary.regular_hours == pytest.approx(12)
    assert summary.overtime_hours == pytest.approx(1.5)
    assert summary.break_hours == pytest.approx(0.5)


def test_summary_skips_open_entries_hours():
    open_entry = entry(0, status=TimeEntryStatus.ACTIVE, clock_out=None)
    summary = summarize([open_entry, entry(3)])
    assert summary.total_hours == 3
    assert summary.entry_count == 2


def test_empty_summary():
    assert summarize([]).total_hours == 0


def test_day_start_is_local_midnight():
    start = day_start(NOW)
    assert start.hour == 0 and start.minute == 0
    assert start <= NOW < start + timedelta(days=1)


def test_today_filter():
    query = period_filter(Period.TODAY, NOW)
    condition = query.conditions[0]
    assert condition.field == "created"
    assert condition.values == [day_start(NOW)]


def test_week_starts_on_sunday():
    query = period_filter(Period.WEEK, NOW)
    start = query.conditions[0].values[0]
    assert start.weekday() == 6
    assert timedelta(0) <= NOW - start < timedelta(days=7)


def test_current_and_last_pay_periods():
    current = period_filter(Period.CURRENT, NOW)
    assert current.conditions[0].values == [NOW - timedelta(days=14)]

    last = period_filter(Period.LAST, NOW)
    assert [c.values[0] for c in last.conditions] == [
        NOW - timedelta(days=28),
        NOW - timedelta(days=14),
    ]


def test_custom_range_is_inclusive():
    query = period_filter(Period.CUSTOM, NOW, date(2024, 3, 1), date(2024, 3, 3))
    lower, upper = query.conditions
    assert lower.operator.value == ">="
    assert upper.operator.value == "<"
    assert lower.values[0].date() == date(2024, 3, 1)
    assert upper.values[0].date() == date(2024, 3, 4)


def test_custom_range_without_dates_is_unfiltered():
    assert period_filter(Period.CUSTOM, NOW, date(2024, 3, 1), None) is None


def test_custom_range_reversed():
    with pytest.raises(ValidationError) as exc_info:
        period_filter(Period.CUSTOM, NOW, date(2024, 3, 3), date(2024, 3, 1))
    assert exc_info.value.field == "end_date"


def test_time_off_rows_count_days():
    rows = time_off_rows([
        TimeOffRequest(id="r1", user="u1", type=TimeOffType.PTO, start_date="2024-01-01 00:00:00.000Z", end_date="2024-01-03 00:00:00.000Z"),
        TimeOffRequest(id="r2", user="u1", type=TimeOffType.SICK, start_date="2024-02-10", end_date="2024-02-08"),
    ])
    assert [r.days for r in rows] == [3, 3]
