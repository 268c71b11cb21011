from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crewleave.api.v1.schemas import MessageResponse, UserResponse, UserUpdateRequest
from crewleave.core.dependencies import (
    get_admission_policy,
    get_db,
    get_session_factory,
    get_today,
)
from crewleave.core.security import require_role
from crewleave.models.user import User
from crewleave.schemas.leave import AllocationCreateRequest, LeaveBalanceResponse
from crewleave.services import users
from crewleave.services.leave.admission import AdmissionPolicy

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
async def list_users(
    role: Optional[str] = None,
    position: Optional[str] = None,
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    query = select(User)
    if role:
        query = query.where(User.role == role)
    if position:
        query = query.where(User.position == position)
    result = await db.execute(query.order_by(User.first_name, User.last_name))
    return result.scalars().all()


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    data: UserUpdateRequest,
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    return await users.update_user(db, user_id, data.model_dump(exclude_unset=True))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: UUID,
    current_user: User = Depends(require_role("admin")),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Permanently delete a user together with their requests and balances."""
    deleted = await users.delete_user(session_factory, current_user.id, user_id)
    return MessageResponse(
        message=(
            f"User {deleted.full_name} ({deleted.email}) and all associated data "
            "have been permanently deleted"
        )
    )


@router.post(
    "/{user_id}/leave-balance",
    response_model=LeaveBalanceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_leave_allocation(
    user_id: UUID,
    data: AllocationCreateRequest,
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
    policy: AdmissionPolicy = Depends(get_admission_policy),
    today: date = Depends(get_today),
):
    """Open the user's allocation for a year (default: the booking year)."""
    year = data.year or policy.balance_year(today)
    balance = await users.create_allocation(db, user_id, year, data.days_allocated)
    return LeaveBalanceResponse(
        year=balance.year,
        allocated=balance.days_allocated,
        used=balance.days_used,
        remaining=balance.days_allocated - balance.days_used,
    )
