from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class LeaveSettingsResponse(BaseModel):
    excluded_weekdays: list[int]
    week_mode: str
    updated_at: Optional[datetime] = None


class LeaveSettingsUpdate(BaseModel):
    excluded_weekdays: list[int] = Field(default_factory=list)


class HolidayCreate(BaseModel):
    holiday_date: date
    name: str = Field(..., min_length=1, max_length=255)


class HolidayResponse(BaseModel):
    id: UUID
    holiday_date: date
    name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class LeavePolicyResponse(BaseModel):
    settings: LeaveSettingsResponse
    holidays: list[HolidayResponse]
