from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_camel = {"alias_generator": to_camel, "populate_by_name": True}


class LeaveBalanceResponse(BaseModel):
    year: int
    allocated: int
    used: int
    remaining: int


class AllocationCreateRequest(BaseModel):
    year: Optional[int] = Field(None, ge=2000, le=2100)
    days_allocated: int = Field(..., ge=0, le=366)

    model_config = _camel


class LeaveRequestCreate(BaseModel):
    start_date: date
    end_date: date
    reason: Optional[str] = None

    model_config = _camel


class AdminAddLeaveRequest(BaseModel):
    user_id: UUID
    start_date: date
    end_date: date
    reason: Optional[str] = None

    model_config = _camel


class LeaveDecisionRequest(BaseModel):
    request_id: UUID
    admin_notes: Optional[str] = None

    model_config = _camel


class LeaveRequestResponse(BaseModel):
    id: UUID
    start_date: date
    end_date: date
    days: int
    status: str
    reason: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True, **_camel}


class LeaveRequestDetail(LeaveRequestResponse):
    user_id: UUID
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    admin_notes: Optional[str] = None


class LeaveRequestListResponse(BaseModel):
    items: list[LeaveRequestDetail]
    total: int


class SuccessResponse(BaseModel):
    success: bool = True


class DeleteLeaveResponse(SuccessResponse):
    days_restored: int

    model_config = _camel


class CapacityResponse(BaseModel):
    position: str
    disabled_dates: list[date]

    model_config = _camel


class UserRemainingDays(BaseModel):
    id: UUID
    full_name: str
    email: str
    position: Optional[str] = None
    days_allocated: int
    days_used: int
    days_remaining: int

    model_config = _camel
