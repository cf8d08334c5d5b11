"""
Timesheet periods and hour summaries for the dashboard and timesheet views.
"""
from __future__ import annotations
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel

from timeclock.calculator import (
    DEFAULT_OVERTIME_THRESHOLD,
    aggregate_regular_overtime,
    break_hours,
    inclusive_day_count,
)
from timeclock.filters import Filter
from timeclock.models import TimeEntry, TimeOffRequest

PAY_PERIOD_DAYS = 14


class Period(str, Enum):
    TODAY = "today"
    WEEK = "week"
    CURRENT = "current"
    LAST = "last"
    CUSTOM = "custom"


class PeriodSummary(BaseModel):
    total_hours: float = 0.0
    regular_hours: float = 0.0
    overtime_hours: float = 0.0
    break_hours: float = 0.0
    entry_count: int = 0


class TimeOffRow(BaseModel):
    request: TimeOffRequest
    days: int


def day_start(moment: datetime) -> datetime:
    """Local midnight at the start of moment's day."""
    local = moment.astimezone()
    return datetime.combine(local.date(), time.min, tzinfo=local.tzinfo)


def period_filter(
    period: Period,
    now: datetime,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Optional[Filter]:
    """
    Creation-time filter for a period, or None for no restriction.

    Weeks start on Sunday. A custom range is inclusive of both dates and is
    ignored unless both dates are given.
    """
    if period == Period.TODAY:
        return Filter.where("created", ">=", day_start(now))
    if period == Period.WEEK:
        days_since_sunday = (now.astimezone().weekday() + 1) % 7
        return Filter.where("created", ">=", day_start(now - timedelta(days=days_since_sunday)))
    if period == Period.CURRENT:
        return Filter.where("created", ">=", now - timedelta(days=PAY_PERIOD_DAYS))
    if period == Period.LAST:
        return (
            Filter.where("created", ">=", now - timedelta(days=2 * PAY_PERIOD_DAYS))
            .and_where("created", "<=", now - timedelta(days=PAY_PERIOD_DAYS))
        )
    if start is None or end is None:
        return None
    inclusive_day_count(start, end)
    range_start = day_start(datetime.combine(start, time.min))
    range_end = day_start(datetime.combine(end + timedelta(days=1), time.min))
    return Filter.where("created", ">=", range_start).and_where("created", "<", range_end)


def summarize(
    entries: Iterable[TimeEntry], threshold_hours: float = DEFAULT_OVERTIME_THRESHOLD
) -> PeriodSummary:
    """Totals for a list of entries; overtime is computed entry by entry."""
    entries = list(entries)
    worked = [e.total_hours for e in entries if e.total_hours]
    regular, overtime = aggregate_regular_overtime(worked, threshold_hours)
    return PeriodSummary(
        total_hours=sum(worked),
        regular_hours=regular,
        overtime_hours=overtime,
        break_hours=sum(break_hours(e.break_start, e.break_end) for e in entries),
        entry_count=len(entries),
    )


def time_off_rows(requests: Iterable[TimeOffRequest]) -> List[TimeOffRow]:
    """History rows with day counts; swapped stored dates count their absolute span."""
    return [
        TimeOffRow(
            request=r,
            days=inclusive_day_count(min(r.start_date, r.end_date), max(r.start_date, r.end_date)),
        )
        for r in requests
    ]
