"""Calendar policy: which calendar dates count against a leave balance.

Weekdays are numbered 0=Sunday..6=Saturday. Every comparison happens on a UTC
calendar date; datetimes carrying an offset are converted to UTC first and
naive datetimes are taken to already be UTC.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable, Mapping, Union

DateLike = Union[date, datetime, str]

DEFAULT_WEEKEND = frozenset({0, 6})


class WeekMode(str, enum.Enum):
    FIVE_DAY = "five_day"  # excluded weekdays and holidays are not chargeable
    SEVEN_DAY = "seven_day"  # only holidays are not chargeable


def to_utc_date(value: DateLike) -> date:
    """Normalise a date, datetime or ISO string to a UTC calendar date."""
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def weekday_number(day: date) -> int:
    """0=Sunday..6=Saturday."""
    return day.isoweekday() % 7


def clean_weekdays(values: Iterable) -> list[int]:
    """Unique, sorted weekday numbers in 0..6; anything else is dropped."""
    cleaned: set[int] = set()
    for raw in values:
        try:
            number = int(str(raw))
        except ValueError:
            continue
        if 0 <= number <= 6:
            cleaned.add(number)
    return sorted(cleaned)


@dataclass(frozen=True)
class CalendarPolicy:
    mode: WeekMode = WeekMode.FIVE_DAY
    excluded_weekdays: frozenset[int] = DEFAULT_WEEKEND
    holidays: Mapping[date, str] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        mode: WeekMode | str,
        excluded_weekdays: Iterable[int] = (),
        holidays: Mapping[date, str] | Iterable[tuple[date, str]] = (),
    ) -> "CalendarPolicy":
        holiday_map = dict(holidays.items() if isinstance(holidays, Mapping) else holidays)
        return cls(
            mode=WeekMode(mode),
            excluded_weekdays=frozenset(clean_weekdays(excluded_weekdays)),
            holidays={to_utc_date(d): name for d, name in holiday_map.items()},
        )

    def is_holiday(self, value: DateLike) -> bool:
        return to_utc_date(value) in self.holidays

    def is_chargeable(self, value: DateLike) -> bool:
        day = to_utc_date(value)
        if day in self.holidays:
            return False
        if self.mode is WeekMode.FIVE_DAY and weekday_number(day) in self.excluded_weekdays:
            return False
        return True
