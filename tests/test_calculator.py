"""
Tests for the time calculator.
"""
from datetime import date, datetime, time, timedelta, timezone

import pytest

from timeclock.calculator import (
    aggregate_regular_overtime,
    break_hours,
    display_hours,
    elapsed_work_seconds,
    format_duration,
    inclusive_day_count,
    span_hours,
    split_regular_overtime,
)
from timeclock.errors import ValidationError


def test_span_with_lunch_break():
    """A 9 to 5 day with a half hour lunch is 7.5 hours."""
    assert span_hours(time(9), time(17), time(12), time(12, 30)) == pytest.approx(7.5)


def test_span_overnight_shift():
    """An end time earlier than the start rolls over to the next day."""
    assert span_hours(time(22), time(6)) == pytest.approx(8.0)


def test_span_overnight_with_break_after_midnight():
    """Break times after midnight are placed inside the overnight shift."""
    assert span_hours(time(22), time(6), time(1), time(1, 30)) == pytest.approx(7.5)


def test_span_with_break_minutes():
    assert span_hours(time(22), time(6), break_minutes=30) == pytest.approx(7.5)


def test_span_naive_datetimes_same_day_roll_over():
    start = datetime(2024, 1, 1, 22, 0)
    end = datetime(2024, 1, 1, 6, 0)
    assert span_hours(start, end) == pytest.approx(8.0)


def test_span_aware_datetimes_are_exact():
    """Timestamps are instants: an end before the start stays negative."""
    start = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    end = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
    assert span_hours(start, end) == pytest.approx(-1.0)


def test_span_matches_wall_clock_difference():
    start = datetime(2024, 1, 1, 8, 15, tzinfo=timezone.utc)
    for minutes in (0, 1, 59, 480, 725):
        end = start + timedelta(minutes=minutes)
        assert span_hours(start, end) == pytest.approx(minutes / 60)
        assert span_hours(start, end) >= 0


def test_span_raw_value_can_be_negative():
    """The raw result is kept for validation; display clamps it."""
    raw = span_hours(time(9), time(9, 30), break_minutes=60)
    assert raw == pytest.approx(-0.5)
    assert display_hours(raw) == 0.0


def test_span_zero_length():
    assert span_hours(time(9), time(9)) == 0.0


def test_split_regular_overtime():
    assert split_regular_overtime(9.5, 8) == (8.0, 1.5)
    assert split_regular_overtime(6, 8) == (6.0, 0.0)
    assert split_regular_overtime(8, 8) == (8.0, 0.0)


def test_split_default_threshold():
    assert split_regular_overtime(10) == (8.0, 2.0)


def test_aggregate_overtime_is_per_entry():
    """Two short days carry no overtime even when the total exceeds the threshold."""
    assert aggregate_regular_overtime([6, 6], 8) == (12.0, 0.0)
    assert aggregate_regular_overtime([12, 4], 8) == (12.0, 4.0)


def test_inclusive_day_count():
    assert inclusive_day_count(date(2024, 1, 1), date(2024, 1, 3)) == 3
    assert inclusive_day_count(date(2024, 1, 1), date(2024, 1, 1)) == 1


def test_inclusive_day_count_rejects_reversed_range():
    with pytest.raises(ValidationError) as exc_info:
        inclusive_day_count(date(2024, 1, 3), date(2024, 1, 1))
    assert exc_info.value.field == "end_date"


def test_inclusive_day_count_partial_days_round_up():
    start = datetime(2024, 1, 1, 0, 0)
    end = datetime(2024, 1, 2, 12, 0)
    assert inclusive_day_count(start, end) == 3


def test_break_hours():
    start = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert break_hours(start, start + timedelta(minutes=45)) == pytest.approx(0.75)
    assert break_hours(start, None) == 0.0
    assert break_hours(None, None) == 0.0


def test_elapsed_work_excludes_open_break():
    clock_in = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
    now = clock_in + timedelta(hours=3)
    on_break_since = clock_in + timedelta(hours=2)
    assert elapsed_work_seconds(clock_in, now, on_break_since) == 2 * 3600


def test_elapsed_work_excludes_finished_break():
    clock_in = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
    now = clock_in + timedelta(hours=3)
    assert elapsed_work_seconds(
        clock_in, now, clock_in + timedelta(hours=1), clock_in + timedelta(hours=1, minutes=30)
    ) == 2.5 * 3600


def test_format_duration():
    assert format_duration(0) == "00:00:00"
    assert format_duration(3725) == "01:02:05"
    assert format_duration(100 * 3600) == "100:00:00"
    assert format_duration(-5) == "00:00:00"
