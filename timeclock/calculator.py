"""
Pure time arithmetic for work sessions, overtime and time-off ranges.

Nothing here performs I/O. Values may be bare wall-clock times, naive
datetimes or timezone-aware instants. A wall-clock reading (bare time, or
naive datetime on the same calendar date as the shift start) that is earlier
than the start is taken to be on the next day. Aware datetimes are exact
instants and are never shifted.
"""
from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Tuple, Union

from timeclock.errors import ValidationError

Moment = Union[datetime, time]

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
DEFAULT_OVERTIME_THRESHOLD = 8.0

# Date used to place bare wall-clock times when no shift date is known.
_ANCHOR_DATE = date(2000, 1, 1)


def _on_date(value: Moment, day: date, reference: Optional[datetime] = None) -> datetime:
    if isinstance(value, datetime):
        return value
    tzinfo = reference.tzinfo if reference is not None else None
    return datetime.combine(day, value, tzinfo=tzinfo)


def _roll_forward(reference: datetime, value: Moment) -> datetime:
    """Place value at or after reference when it is a same-day wall-clock reading."""
    moment = _on_date(value, reference.date(), reference)
    wall_clock = not isinstance(value, datetime) or value.tzinfo is None
    if wall_clock and moment < reference and moment.date() == reference.date():
        moment += timedelta(days=1)
    return moment


def span_hours(
    start: Moment,
    end: Moment,
    break_start: Optional[Moment] = None,
    break_end: Optional[Moment] = None,
    break_minutes: float = 0,
) -> float:
    """
    Worked hours between start and end minus the break.

    The result is raw and may be negative when the break exceeds the span;
    callers validate on it and clamp with display_hours() for display.
    """
    start_at = _on_date(start, _ANCHOR_DATE)
    end_at = _roll_forward(start_at, end)

    break_seconds = float(break_minutes) * 60
    if break_start is not None and break_end is not None:
        break_start_at = _roll_forward(start_at, break_start)
        break_end_at = _roll_forward(break_start_at, break_end)
        break_seconds += (break_end_at - break_start_at).total_seconds()

    worked = (end_at - start_at).total_seconds() - break_seconds
    return worked / SECONDS_PER_HOUR


def display_hours(value: float) -> float:
    return max(0.0, value)


def split_regular_overtime(
    total_hours: float, threshold_hours: float = DEFAULT_OVERTIME_THRESHOLD
) -> Tuple[float, float]:
    """Split one entry's hours into (regular, overtime) against a daily threshold."""
    regular = min(float(total_hours), float(threshold_hours))
    overtime = max(0.0, float(total_hours) - float(threshold_hours))
    return regular, overtime


def aggregate_regular_overtime(
    hours: Iterable[float], threshold_hours: float = DEFAULT_OVERTIME_THRESHOLD
) -> Tuple[float, float]:
    """
    Sum per-entry splits.

    Overtime is thresholded on each entry, not on the period total, so two
    6 hour days yield no overtime while one 12 hour day yields 4.
    """
    regular_total = 0.0
    overtime_total = 0.0
    for value in hours:
        regular, overtime = split_regular_overtime(value, threshold_hours)
        regular_total += regular
        overtime_total += overtime
    return regular_total, overtime_total


def inclusive_day_count(start_date: date, end_date: date) -> int:
    """Number of calendar days covered by an inclusive range."""
    if end_date < start_date:
        raise ValidationError("end_date", "End date must be after start date")
    delta = end_date - start_date
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY) + 1


def break_hours(break_start: Optional[datetime], break_end: Optional[datetime]) -> float:
    if break_start is None or break_end is None:
        return 0.0
    return (break_end - break_start).total_seconds() / SECONDS_PER_HOUR


def elapsed_work_seconds(
    clock_in: datetime,
    now: datetime,
    break_start: Optional[datetime] = None,
    break_end: Optional[datetime] = None,
) -> float:
    """Seconds worked so far, excluding a finished break or the open one."""
    elapsed = (now - clock_in).total_seconds()
    if break_start is not None:
        # A break_end older than break_start belongs to an earlier break.
        open_break = break_end is None or break_end < break_start
        break_stop = now if open_break else break_end
        elapsed -= max(0.0, (break_stop - break_start).total_seconds())
    return max(0.0, elapsed)


def format_duration(seconds: float) -> str:
    """Render seconds as HH:MM:SS; hours are not capped at 24."""
    whole = int(max(0.0, seconds))
    hours, rest = divmod(whole, SECONDS_PER_HOUR)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
