from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewleave.core.config import settings
from crewleave.core.dependencies import (
    get_admission_controller,
    get_admission_policy,
    get_current_user,
    get_db,
    get_today,
)
from crewleave.core.security import require_role
from crewleave.models.leave_balance import LeaveBalance
from crewleave.models.leave_request import STATUSES, LeaveRequest
from crewleave.models.user import User
from crewleave.schemas.leave import (
    AdminAddLeaveRequest,
    CapacityResponse,
    DeleteLeaveResponse,
    LeaveBalanceResponse,
    LeaveDecisionRequest,
    LeaveRequestCreate,
    LeaveRequestDetail,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    SuccessResponse,
    UserRemainingDays,
)
from crewleave.services.leave.admission import AdmissionPolicy, LeaveAdmissionController
from crewleave.services.leave.ledger import BalanceLedger

router = APIRouter(prefix="/leave", tags=["leave"])


def _is_admin(user: User) -> bool:
    return user.role == "admin"


@router.get("/balance", response_model=LeaveBalanceResponse)
async def get_leave_balance(
    user_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    policy: AdmissionPolicy = Depends(get_admission_policy),
    today: date = Depends(get_today),
):
    """Get a leave balance. Admins can specify user_id; others see their own."""
    target_user_id = user_id if user_id and _is_admin(current_user) else current_user.id
    balance = await BalanceLedger(db).remaining(target_user_id, policy.balance_year(today))
    return LeaveBalanceResponse(
        year=balance.year,
        allocated=balance.allocated,
        used=balance.used,
        remaining=balance.remaining,
    )


@router.post(
    "/requests", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED
)
async def submit_leave_request(
    data: LeaveRequestCreate,
    current_user: User = Depends(get_current_user),
    controller: LeaveAdmissionController = Depends(get_admission_controller),
):
    """Submit a new leave request; it stays pending until an admin decides."""
    return await controller.submit(
        current_user.id, data.start_date, data.end_date, data.reason
    )


@router.get("/requests", response_model=LeaveRequestListResponse)
async def list_leave_requests(
    user_id: Optional[UUID] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List leave requests. Admins see everyone's; employees see their own."""
    query = select(LeaveRequest)

    if _is_admin(current_user):
        if user_id:
            query = query.where(LeaveRequest.user_id == user_id)
    else:
        query = query.where(LeaveRequest.user_id == current_user.id)

    if status_filter:
        if status_filter not in STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Status must be one of: {', '.join(STATUSES)}",
            )
        query = query.where(LeaveRequest.status == status_filter)

    result = await db.execute(query.order_by(LeaveRequest.start_date.desc()))
    requests = [LeaveRequestDetail.model_validate(r) for r in result.scalars().all()]
    return LeaveRequestListResponse(items=requests, total=len(requests))


@router.post("/requests/approve", response_model=SuccessResponse)
async def approve_leave_request(
    data: LeaveDecisionRequest,
    current_user: User = Depends(require_role("admin")),
    controller: LeaveAdmissionController = Depends(get_admission_controller),
):
    await controller.approve(data.request_id, current_user.id, data.admin_notes)
    return SuccessResponse()


@router.post("/requests/deny", response_model=SuccessResponse)
async def deny_leave_request(
    data: LeaveDecisionRequest,
    current_user: User = Depends(require_role("admin")),
    controller: LeaveAdmissionController = Depends(get_admission_controller),
):
    await controller.deny(data.request_id, current_user.id, data.admin_notes)
    return SuccessResponse()


@router.post("/requests/{request_id}/cancel", response_model=SuccessResponse)
async def cancel_leave_request(
    request_id: UUID,
    current_user: User = Depends(get_current_user),
    controller: LeaveAdmissionController = Depends(get_admission_controller),
):
    """Cancel a pending request (owner or admin)."""
    await controller.cancel(request_id, current_user.id, is_admin=_is_admin(current_user))
    return SuccessResponse()


@router.delete("/requests/{request_id}", response_model=DeleteLeaveResponse)
async def delete_leave_request(
    request_id: UUID,
    current_user: User = Depends(require_role("admin")),
    controller: LeaveAdmissionController = Depends(get_admission_controller),
):
    """Delete a request of any status; approved days go back to the balance."""
    restored = await controller.delete(request_id)
    return DeleteLeaveResponse(days_restored=restored)


@router.post(
    "/admin/add", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED
)
async def admin_add_leave(
    data: AdminAddLeaveRequest,
    current_user: User = Depends(require_role("admin")),
    controller: LeaveAdmissionController = Depends(get_admission_controller),
):
    """Record leave for a user directly as approved."""
    return await controller.admin_add(
        current_user.id, data.user_id, data.start_date, data.end_date, data.reason
    )


@router.get("/capacity", response_model=CapacityResponse)
async def position_capacity(
    position: str,
    user_id: Optional[UUID] = Query(None, alias="userId"),
    current_user: User = Depends(require_role("admin")),
    controller: LeaveAdmissionController = Depends(get_admission_controller),
):
    """Dates already at capacity for a position, to grey out in a date picker."""
    if position not in settings.LEAVE_POSITIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Valid position parameter required ({' or '.join(settings.LEAVE_POSITIONS)})",
        )
    disabled = await controller.disabled_dates(position, exclude_user_id=user_id)
    return CapacityResponse(position=position, disabled_dates=disabled)


@router.get("/users-with-remaining-days", response_model=list[UserRemainingDays])
async def users_with_remaining_days(
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
    policy: AdmissionPolicy = Depends(get_admission_policy),
    today: date = Depends(get_today),
):
    result = await db.execute(
        select(User, LeaveBalance)
        .join(LeaveBalance, LeaveBalance.user_id == User.id)
        .where(
            User.is_active.is_(True),
            LeaveBalance.year == policy.balance_year(today),
            LeaveBalance.days_allocated > LeaveBalance.days_used,
        )
        .order_by(User.first_name, User.last_name)
    )
    return [
        UserRemainingDays(
            id=user.id,
            full_name=user.full_name,
            email=user.email,
            position=user.position,
            days_allocated=balance.days_allocated,
            days_used=balance.days_used,
            days_remaining=balance.days_allocated - balance.days_used,
        )
        for user, balance in result.all()
    ]
