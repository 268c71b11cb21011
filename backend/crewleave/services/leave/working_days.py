from __future__ import annotations

from datetime import date, timedelta
from typing import Iterator

from crewleave.services.leave.calendar_policy import CalendarPolicy, DateLike, to_utc_date


def iter_days(start: DateLike, end: DateLike) -> Iterator[date]:
    """Every calendar date from start to end, both inclusive."""
    current = to_utc_date(start)
    last = to_utc_date(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


def span_days(start: DateLike, end: DateLike) -> int:
    """Number of calendar days in the inclusive range."""
    return (to_utc_date(end) - to_utc_date(start)).days + 1


def chargeable_days(start: DateLike, end: DateLike, policy: CalendarPolicy) -> int:
    """Count the dates in [start, end] the policy charges against a balance."""
    return sum(1 for day in iter_days(start, end) if policy.is_chargeable(day))


def chargeable_dates(start: DateLike, end: DateLike, policy: CalendarPolicy) -> list[date]:
    return [day for day in iter_days(start, end) if policy.is_chargeable(day)]
