from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

_camel = {"alias_generator": to_camel, "populate_by_name": True}


class DashboardStats(BaseModel):
    pending_requests: int
    approved_this_month: int
    total_employees: int
    available_days: int

    model_config = _camel


class CalendarLeaveDay(BaseModel):
    request_id: UUID
    day: date
    user_id: UUID
    full_name: str
    position: Optional[str] = None

    model_config = _camel


class CalendarLeaveResponse(BaseModel):
    start: date
    end: date
    days: list[CalendarLeaveDay]


class ReminderRequest(BaseModel):
    user_id: UUID

    model_config = _camel


class UpcomingLeave(BaseModel):
    id: UUID
    user_id: UUID
    full_name: str
    email: str
    position: Optional[str] = None
    start_date: date
    end_date: date
    days: int
    reason: Optional[str] = None

    model_config = _camel
