from __future__ import annotations

from datetime import date, datetime, timezone


def now_utc() -> datetime:
    """Current time, timezone aware.

    Wrapped so tests and controllers can inject a fixed clock.
    """
    return datetime.now(timezone.utc)


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def to_store_datetime(value: datetime) -> str:
    """Format a datetime the way the store writes it: UTC, millisecond precision.

    Naive values are taken as local wall-clock time.
    """
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%d %H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
