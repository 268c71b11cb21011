from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crewleave.core.dependencies import get_admission_policy, get_current_user, get_db, get_today
from crewleave.core.security import require_role
from crewleave.models.leave_balance import LeaveBalance
from crewleave.models.leave_request import APPROVED, PENDING, LeaveRequest
from crewleave.models.user import User
from crewleave.schemas.dashboard import DashboardStats, UpcomingLeave
from crewleave.services.leave.admission import AdmissionPolicy
from crewleave.services.leave.schedule import upcoming_leave

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
    policy: AdmissionPolicy = Depends(get_admission_policy),
    today: date = Depends(get_today),
):
    month_start = datetime(today.year, today.month, 1, tzinfo=timezone.utc)

    pending = await db.scalar(
        select(func.count()).select_from(LeaveRequest).where(LeaveRequest.status == PENDING)
    )
    approved_this_month = await db.scalar(
        select(func.count())
        .select_from(LeaveRequest)
        .where(LeaveRequest.status == APPROVED, LeaveRequest.approved_at >= month_start)
    )
    employees = await db.scalar(
        select(func.count())
        .select_from(User)
        .where(User.role == "employee", User.is_active.is_(True))
    )
    available = await db.scalar(
        select(func.coalesce(func.sum(LeaveBalance.days_allocated - LeaveBalance.days_used), 0))
        .select_from(LeaveBalance)
        .join(User, User.id == LeaveBalance.user_id)
        .where(User.is_active.is_(True), LeaveBalance.year == policy.balance_year(today))
    )

    return DashboardStats(
        pending_requests=pending or 0,
        approved_this_month=approved_this_month or 0,
        total_employees=employees or 0,
        available_days=available or 0,
    )


@router.get("/upcoming-leave", response_model=list[UpcomingLeave])
async def dashboard_upcoming_leave(
    limit: Optional[int] = Query(None, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    today: date = Depends(get_today),
):
    """Approved leave starting today or later, soonest first."""
    return [
        UpcomingLeave(
            id=leave_request.id,
            user_id=user.id,
            full_name=user.full_name,
            email=user.email,
            position=user.position,
            start_date=leave_request.start_date,
            end_date=leave_request.end_date,
            days=leave_request.days,
            reason=leave_request.reason,
        )
        for leave_request, user in await upcoming_leave(db, today, limit)
    ]
