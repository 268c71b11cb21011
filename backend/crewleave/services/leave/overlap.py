from __future__ import annotations

from datetime import date
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewleave.models.leave_request import APPROVED, PENDING, LeaveRequest

BLOCKING_STATUSES = (PENDING, APPROVED)


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Inclusive overlap test, symmetric in its two ranges."""
    return start_a <= end_b and end_a >= start_b


async def has_overlap(
    db: AsyncSession,
    user_id: UUID,
    start: date,
    end: date,
    statuses: Iterable[str] = BLOCKING_STATUSES,
) -> bool:
    """True if the user already has a request in one of `statuses` touching [start, end]."""
    result = await db.execute(
        select(LeaveRequest.id)
        .where(
            LeaveRequest.user_id == user_id,
            LeaveRequest.status.in_(list(statuses)),
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        )
        .limit(1)
    )
    return result.first() is not None
