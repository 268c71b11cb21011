"""Remaining-balance reminder emails."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewleave.core.exceptions import NotFoundError, ValidationError
from crewleave.models.leave_balance import LeaveBalance
from crewleave.models.user import User
from crewleave.services.notifications.email import EmailService
from crewleave.services.notifications.messages import reminder_message

logger = logging.getLogger(__name__)


async def _deliver(email: EmailService, user: User, balance: LeaveBalance) -> bool:
    remaining = balance.days_allocated - balance.days_used
    message = reminder_message(
        user.full_name, balance.year, balance.days_allocated, balance.days_used, remaining
    )
    return await email.send(user.email, message)


async def send_balance_reminder(
    db: AsyncSession, user_id: UUID, year: int, email: EmailService
) -> bool:
    """Email one user their remaining days. Returns whether the send succeeded."""
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    result = await db.execute(
        select(LeaveBalance).where(LeaveBalance.user_id == user_id, LeaveBalance.year == year)
    )
    balance = result.scalar_one_or_none()
    if balance is None or balance.days_allocated - balance.days_used <= 0:
        raise ValidationError("User has no remaining leave days")
    return await _deliver(email, user, balance)


async def run_balance_reminders(db: AsyncSession, year: int, email: EmailService) -> int:
    """Remind every active employee who still has days left. Returns emails sent."""
    result = await db.execute(
        select(User, LeaveBalance)
        .join(LeaveBalance, LeaveBalance.user_id == User.id)
        .where(
            User.is_active.is_(True),
            User.role == "employee",
            LeaveBalance.year == year,
            LeaveBalance.days_allocated > LeaveBalance.days_used,
        )
    )
    sent = 0
    for user, balance in result.all():
        if await _deliver(email, user, balance):
            sent += 1
    logger.info("Balance reminder run for %d complete: %d emails sent", year, sent)
    return sent
