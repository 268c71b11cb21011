"""Invites, registration and password reset.

An admin invite carries the role, position and yearly allocation that seed the
new user's LeaveBalance when registration completes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crewleave.core.config import settings
from crewleave.core.exceptions import ConflictError, NotFoundError, ValidationError
from crewleave.core.security import (
    generate_otp,
    generate_reset_token,
    hash_password,
    hash_token,
)
from crewleave.models.invite import Invite
from crewleave.models.leave_balance import LeaveBalance
from crewleave.models.password_reset import PasswordResetToken
from crewleave.models.user import User
from crewleave.services.leave.transaction import run_in_transaction

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; they are stored as UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def _user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def _open_invite(db: AsyncSession, email: str) -> Optional[Invite]:
    result = await db.execute(
        select(Invite).where(Invite.email == email.lower(), Invite.used.is_(False))
    )
    for invite in result.scalars().all():
        if _aware(invite.expires_at) > _now():
            return invite
    return None


async def create_invite(
    db: AsyncSession,
    created_by: UUID,
    *,
    email: str,
    first_name: str,
    last_name: str,
    phone: Optional[str],
    role: str,
    position: Optional[str],
    days_allocated: int,
) -> Invite:
    if position is not None and position not in settings.LEAVE_POSITIONS:
        raise ValidationError(
            f"Position must be one of: {', '.join(settings.LEAVE_POSITIONS)}"
        )
    if await _user_by_email(db, email):
        raise ConflictError("User with this email already exists")
    if await _open_invite(db, email):
        raise ConflictError("There is already a pending invite for this email")

    invite = Invite(
        email=email.lower(),
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        role=role,
        position=position,
        days_allocated=days_allocated,
        otp_code=generate_otp(),
        expires_at=_now() + timedelta(hours=settings.INVITE_EXPIRE_HOURS),
        created_by=created_by,
    )
    db.add(invite)
    await db.flush()
    logger.info("Invite %s created for %s by %s", invite.id, invite.email, created_by)
    return invite


async def list_pending_invites(db: AsyncSession) -> list[Invite]:
    result = await db.execute(
        select(Invite).where(Invite.used.is_(False)).order_by(Invite.created_at.desc())
    )
    return [i for i in result.scalars().all() if _aware(i.expires_at) > _now()]


async def _get_unused_invite(db: AsyncSession, invite_id: UUID) -> Invite:
    invite = await db.get(Invite, invite_id)
    if invite is None or invite.used:
        raise NotFoundError("Invite not found")
    return invite


async def revoke_invite(db: AsyncSession, invite_id: UUID) -> None:
    invite = await _get_unused_invite(db, invite_id)
    await db.delete(invite)
    await db.flush()
    logger.info("Invite %s revoked", invite_id)


async def resend_invite(db: AsyncSession, invite_id: UUID) -> Invite:
    """Issue a fresh code and expiry for an unused invite."""
    invite = await _get_unused_invite(db, invite_id)
    invite.otp_code = generate_otp()
    invite.expires_at = _now() + timedelta(hours=settings.INVITE_EXPIRE_HOURS)
    await db.flush()
    return invite


async def complete_registration(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    email: str,
    otp_code: str,
    password: str,
    balance_year: int,
) -> User:
    """Create the user and their balance, and burn the invite, in one transaction."""
    if len(password) < 6:
        raise ValidationError("Password must be at least 6 characters long")

    async def operation(db: AsyncSession) -> User:
        result = await db.execute(
            select(Invite)
            .where(
                Invite.email == email.lower(),
                Invite.otp_code == otp_code,
                Invite.used.is_(False),
            )
            .with_for_update()
        )
        invite = result.scalar_one_or_none()
        if invite is None or _aware(invite.expires_at) <= _now():
            raise ValidationError("Invalid or expired OTP code")
        if await _user_by_email(db, invite.email):
            raise ConflictError("User with this email already exists")

        user = User(
            email=invite.email,
            hashed_password=hash_password(password),
            first_name=invite.first_name,
            last_name=invite.last_name,
            phone=invite.phone,
            role=invite.role,
            position=invite.position,
        )
        db.add(user)
        await db.flush()
        db.add(
            LeaveBalance(
                user_id=user.id,
                year=balance_year,
                days_allocated=invite.days_allocated,
                days_used=0,
            )
        )
        invite.used = True
        await db.flush()
        return user

    user = await run_in_transaction(session_factory, operation, name="complete registration")
    logger.info("Registration completed for %s", user.email)
    return user


async def request_password_reset(db: AsyncSession, email: str) -> Optional[tuple[User, str]]:
    """Store a single-use reset token; returns (user, raw token) or None for unknown emails."""
    user = await _user_by_email(db, email)
    if user is None or not user.is_active:
        return None
    raw, token_hash = generate_reset_token()
    db.add(
        PasswordResetToken(
            token_hash=token_hash,
            user_id=user.id,
            expires_at=_now() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
        )
    )
    await db.flush()
    return user, raw


async def reset_password(db: AsyncSession, raw_token: str, new_password: str) -> None:
    if len(new_password) < 6:
        raise ValidationError("Password must be at least 6 characters long")
    token = await db.get(PasswordResetToken, hash_token(raw_token))
    if token is None or token.used or _aware(token.expires_at) <= _now():
        raise ValidationError("Invalid or expired reset token")
    user = await db.get(User, token.user_id)
    if user is None:
        raise ValidationError("Invalid or expired reset token")
    user.hashed_password = hash_password(new_password)
    token.used = True
    await db.flush()
    logger.info("Password reset for user %s", user.id)
