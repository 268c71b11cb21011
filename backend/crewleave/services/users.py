"""Account administration: profile edits, removal, yearly allocations, passwords.

Deleting a user removes everything that belongs to them (requests, balances,
reset tokens) and detaches the records they only acted on (approvals, invites
they sent).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crewleave.core.config import settings
from crewleave.core.exceptions import ConflictError, NotFoundError, ValidationError
from crewleave.core.security import hash_password, verify_password
from crewleave.models.invite import Invite
from crewleave.models.leave_balance import LeaveBalance
from crewleave.models.leave_request import LeaveRequest
from crewleave.models.password_reset import PasswordResetToken
from crewleave.models.user import User
from crewleave.services.leave.transaction import run_in_transaction

logger = logging.getLogger(__name__)

ROLES = ("admin", "employee")
EDITABLE_FIELDS = ("first_name", "last_name", "phone", "role", "position", "is_active")


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def update_user(db: AsyncSession, user_id: UUID, changes: dict[str, Any]) -> User:
    """Apply the given profile fields; unknown keys are ignored.

    A position change does not revisit leave that is already approved.
    """
    changes = {field: value for field, value in changes.items() if field in EDITABLE_FIELDS}
    if not changes:
        raise ValidationError("No fields to update")
    if "role" in changes and changes["role"] not in ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(ROLES)}")
    position = changes.get("position")
    if position is not None and position not in settings.LEAVE_POSITIONS:
        raise ValidationError(
            f"Position must be one of: {', '.join(settings.LEAVE_POSITIONS)}"
        )
    for field in ("first_name", "last_name"):
        if field in changes and not (changes[field] or "").strip():
            raise ValidationError(f"{field.replace('_', ' ').capitalize()} cannot be empty")

    user = await get_user(db, user_id)
    for field, value in changes.items():
        setattr(user, field, value)
    await db.flush()
    logger.info("Updated user %s: %s", user_id, ", ".join(sorted(changes)))
    return user


async def delete_user(
    session_factory: async_sessionmaker[AsyncSession], actor_id: UUID, user_id: UUID
) -> User:
    """Permanently remove a user and their leave data in one transaction."""
    if actor_id == user_id:
        raise ValidationError("You cannot delete your own account")

    async def operation(db: AsyncSession) -> User:
        result = await db.execute(select(User).where(User.id == user_id).with_for_update())
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")

        await db.execute(
            update(LeaveRequest)
            .where(LeaveRequest.approved_by == user_id)
            .values(approved_by=None)
        )
        await db.execute(
            update(Invite).where(Invite.created_by == user_id).values(created_by=None)
        )
        await db.execute(delete(LeaveRequest).where(LeaveRequest.user_id == user_id))
        await db.execute(delete(LeaveBalance).where(LeaveBalance.user_id == user_id))
        await db.execute(
            delete(PasswordResetToken).where(PasswordResetToken.user_id == user_id)
        )
        await db.execute(delete(User).where(User.id == user_id))
        return user

    user = await run_in_transaction(session_factory, operation, name="delete user")
    logger.info("User %s (%s) deleted by %s", user_id, user.email, actor_id)
    return user


async def create_allocation(
    db: AsyncSession, user_id: UUID, year: int, days_allocated: int
) -> LeaveBalance:
    """Open a balance for a year that has none yet."""
    if days_allocated < 0:
        raise ValidationError("Days allocated must be a non-negative number")
    await get_user(db, user_id)

    existing = await db.scalar(
        select(LeaveBalance.id).where(LeaveBalance.user_id == user_id, LeaveBalance.year == year)
    )
    if existing is not None:
        raise ConflictError(f"Allocation already exists for {year}")

    balance = LeaveBalance(
        user_id=user_id,
        year=year,
        days_allocated=days_allocated,
        days_used=0,
        updated_at=datetime.now(timezone.utc),
    )
    db.add(balance)
    await db.flush()
    logger.info("Allocated %d day(s) to user %s for %d", days_allocated, user_id, year)
    return balance


async def change_password(
    db: AsyncSession, user: User, current_password: str, new_password: str
) -> None:
    if len(new_password) < 6:
        raise ValidationError("New password must be at least 6 characters long")
    if not verify_password(current_password, user.hashed_password):
        raise ValidationError("Current password is incorrect")
    user.hashed_password = hash_password(new_password)
    await db.flush()
    logger.info("Password changed for user %s", user.id)
