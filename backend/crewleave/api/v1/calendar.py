import calendar as month_calendar
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from crewleave.core.dependencies import get_admission_policy, get_current_user, get_db, get_today
from crewleave.models.user import User
from crewleave.schemas.dashboard import CalendarLeaveDay, CalendarLeaveResponse
from crewleave.services.leave.admission import AdmissionPolicy
from crewleave.services.leave.policy_store import load_calendar_policy
from crewleave.services.leave.schedule import approved_leave_between
from crewleave.services.leave.working_days import chargeable_dates

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("/leave", response_model=CalendarLeaveResponse)
async def leave_calendar(
    start: Optional[date] = None,
    end: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    policy: AdmissionPolicy = Depends(get_admission_policy),
    today: date = Depends(get_today),
):
    """Approved leave, one entry per chargeable day in the window.

    Defaults to the current month.
    """
    if start is None:
        start = today.replace(day=1)
    if end is None:
        end = start.replace(day=month_calendar.monthrange(start.year, start.month)[1])
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date cannot be before start date",
        )

    approved = await approved_leave_between(db, start, end)
    calendar_policy = await load_calendar_policy(db, policy.week_mode, start, end)

    days: list[CalendarLeaveDay] = []
    for leave_request, user in approved:
        window_start = max(leave_request.start_date, start)
        window_end = min(leave_request.end_date, end)
        for day in chargeable_dates(window_start, window_end, calendar_policy):
            days.append(
                CalendarLeaveDay(
                    request_id=leave_request.id,
                    day=day,
                    user_id=user.id,
                    full_name=user.full_name,
                    position=user.position,
                )
            )
    days.sort(key=lambda entry: (entry.day, entry.full_name))
    return CalendarLeaveResponse(start=start, end=end, days=days)
