"""Per-position daily capacity.

Counts, for every calendar day, how many approved requests of users holding a
given position cover that day. A day whose count has reached the cap can not
take another request from that position.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewleave.models.leave_request import APPROVED, LeaveRequest
from crewleave.models.user import User
from crewleave.services.leave.working_days import iter_days

DEFAULT_CAPACITY = 5


@dataclass(frozen=True)
class CapacityResult:
    allowed: bool
    first_conflict_date: Optional[date] = None


def tally_days(ranges: Iterable[tuple[date, date]]) -> Counter:
    """date -> number of ranges covering it."""
    counts: Counter = Counter()
    for start, end in ranges:
        counts.update(iter_days(start, end))
    return counts


def first_conflict(counts: Counter, start: date, end: date, cap: int) -> Optional[date]:
    for day in iter_days(start, end):
        if counts[day] >= cap:
            return day
    return None


async def approved_ranges(
    db: AsyncSession,
    position: str,
    start: date,
    end: date,
    exclude_user_id: Optional[UUID] = None,
    *,
    lock: bool = False,
) -> list[tuple[date, date]]:
    query = (
        select(LeaveRequest.start_date, LeaveRequest.end_date)
        .join(User, User.id == LeaveRequest.user_id)
        .where(
            LeaveRequest.status == APPROVED,
            User.position == position,
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        )
    )
    if exclude_user_id is not None:
        query = query.where(LeaveRequest.user_id != exclude_user_id)
    if lock:
        query = query.with_for_update(of=LeaveRequest)
    result = await db.execute(query)
    return [(row.start_date, row.end_date) for row in result.all()]


async def capacity_exceeded(
    db: AsyncSession,
    position: str,
    start: date,
    end: date,
    exclude_user_id: Optional[UUID] = None,
    cap: int = DEFAULT_CAPACITY,
    *,
    lock: bool = False,
) -> CapacityResult:
    ranges = await approved_ranges(db, position, start, end, exclude_user_id, lock=lock)
    conflict = first_conflict(tally_days(ranges), start, end, cap)
    return CapacityResult(allowed=conflict is None, first_conflict_date=conflict)


async def disabled_dates(
    db: AsyncSession,
    position: str,
    window_start: date,
    window_end: date,
    exclude_user_id: Optional[UUID] = None,
    cap: int = DEFAULT_CAPACITY,
) -> list[date]:
    """Days inside the window already at capacity for the position, ascending."""
    ranges = await approved_ranges(db, position, window_start, window_end, exclude_user_id)
    counts = tally_days(ranges)
    return sorted(
        day
        for day, count in counts.items()
        if count >= cap and window_start <= day <= window_end
    )
