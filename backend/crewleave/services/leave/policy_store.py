"""Reads and writes the global calendar policy (settings row + holidays)."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewleave.core.exceptions import NotFoundError, ValidationError
from crewleave.models.holiday import Holiday
from crewleave.models.leave_settings import SINGLETON_ID, LeaveSettings
from crewleave.services.leave.calendar_policy import CalendarPolicy, WeekMode, clean_weekdays

logger = logging.getLogger(__name__)


async def get_settings_row(db: AsyncSession) -> LeaveSettings:
    """Return the settings singleton, creating it empty on first use."""
    row = await db.get(LeaveSettings, SINGLETON_ID)
    if row is None:
        row = LeaveSettings(id=SINGLETON_ID, excluded_weekdays=[])
        db.add(row)
        await db.flush()
    return row


async def list_holidays(
    db: AsyncSession, start: Optional[date] = None, end: Optional[date] = None
) -> list[Holiday]:
    query = select(Holiday)
    if start is not None:
        query = query.where(Holiday.holiday_date >= start)
    if end is not None:
        query = query.where(Holiday.holiday_date <= end)
    result = await db.execute(query.order_by(Holiday.holiday_date))
    return list(result.scalars().all())


async def load_calendar_policy(
    db: AsyncSession,
    mode: WeekMode,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> CalendarPolicy:
    """Build the policy from the store; holidays may be limited to a window."""
    row = await db.get(LeaveSettings, SINGLETON_ID)
    excluded = row.excluded_weekdays if row is not None else []
    holidays = await list_holidays(db, start, end)
    return CalendarPolicy.build(
        mode,
        excluded_weekdays=excluded,
        holidays={h.holiday_date: h.name for h in holidays},
    )


async def update_excluded_weekdays(db: AsyncSession, weekdays: Iterable) -> LeaveSettings:
    row = await get_settings_row(db)
    row.excluded_weekdays = clean_weekdays(weekdays)
    row.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("Excluded weekdays set to %s", row.excluded_weekdays)
    return row


async def upsert_holiday(db: AsyncSession, holiday_date: date, name: str) -> Holiday:
    """Holiday dates are unique: adding an existing date renames it."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("holiday_date and name are required")
    result = await db.execute(select(Holiday).where(Holiday.holiday_date == holiday_date))
    holiday = result.scalar_one_or_none()
    if holiday is None:
        holiday = Holiday(holiday_date=holiday_date, name=name)
        db.add(holiday)
    else:
        holiday.name = name
    await db.flush()
    logger.info("Holiday %s saved as '%s'", holiday_date, name)
    return holiday


async def delete_holiday(db: AsyncSession, holiday_id: UUID) -> None:
    holiday = await db.get(Holiday, holiday_id)
    if holiday is None:
        raise NotFoundError("Holiday not found")
    await db.delete(holiday)
    await db.flush()
