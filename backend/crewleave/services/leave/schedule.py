"""Read-side views of approved leave for the calendar and the dashboard."""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewleave.models.leave_request import APPROVED, LeaveRequest
from crewleave.models.user import User


async def approved_leave_between(
    db: AsyncSession, start: date, end: date
) -> list[tuple[LeaveRequest, User]]:
    """Approved requests overlapping [start, end], with their owners."""
    result = await db.execute(
        select(LeaveRequest, User)
        .join(User, User.id == LeaveRequest.user_id)
        .where(
            LeaveRequest.status == APPROVED,
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        )
        .order_by(LeaveRequest.start_date)
    )
    return [(leave_request, user) for leave_request, user in result.all()]


async def upcoming_leave(
    db: AsyncSession, since: date, limit: Optional[int] = None
) -> list[tuple[LeaveRequest, User]]:
    """Approved requests starting on or after `since`, soonest first."""
    query = (
        select(LeaveRequest, User)
        .join(User, User.id == LeaveRequest.user_id)
        .where(LeaveRequest.status == APPROVED, LeaveRequest.start_date >= since)
        .order_by(LeaveRequest.start_date, User.first_name, User.last_name)
    )
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return [(leave_request, user) for leave_request, user in result.all()]
