"""Leave policy administration: excluded weekdays and public holidays."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from crewleave.core.config import settings as app_settings
from crewleave.core.dependencies import get_current_user, get_db
from crewleave.core.security import require_role
from crewleave.models.leave_settings import LeaveSettings
from crewleave.models.user import User
from crewleave.schemas.leave import SuccessResponse
from crewleave.schemas.settings import (
    HolidayCreate,
    HolidayResponse,
    LeavePolicyResponse,
    LeaveSettingsResponse,
    LeaveSettingsUpdate,
)
from crewleave.services.leave import policy_store

router = APIRouter(prefix="/settings", tags=["settings"])


def _settings_response(row: LeaveSettings) -> LeaveSettingsResponse:
    return LeaveSettingsResponse(
        excluded_weekdays=row.excluded_weekdays,
        week_mode=app_settings.LEAVE_WEEK_MODE,
        updated_at=row.updated_at,
    )


@router.get("/leave", response_model=LeavePolicyResponse)
async def get_leave_settings(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await policy_store.get_settings_row(db)
    holidays = await policy_store.list_holidays(db)
    return LeavePolicyResponse(
        settings=_settings_response(row),
        holidays=[HolidayResponse.model_validate(h) for h in holidays],
    )


@router.put("/leave", response_model=LeaveSettingsResponse)
async def update_leave_settings(
    body: LeaveSettingsUpdate,
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    """Replace the excluded weekdays (0 = Sunday .. 6 = Saturday)."""
    row = await policy_store.update_excluded_weekdays(db, body.excluded_weekdays)
    return _settings_response(row)


@router.post(
    "/leave/holidays", response_model=HolidayResponse, status_code=status.HTTP_201_CREATED
)
async def add_holiday(
    body: HolidayCreate,
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    return await policy_store.upsert_holiday(db, body.holiday_date, body.name)


@router.delete("/leave/holidays/{holiday_id}", response_model=SuccessResponse)
async def remove_holiday(
    holiday_id: UUID,
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    await policy_store.delete_holiday(db, holiday_id)
    return SuccessResponse()
