from datetime import date, datetime, timezone
from typing import AsyncGenerator
from uuid import UUID

import redis.asyncio as redis
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crewleave.core.config import settings
from crewleave.core.database import async_session_factory
from crewleave.core.security import decode_access_token
from crewleave.services.leave.admission import AdmissionPolicy, LeaveAdmissionController
from crewleave.services.notifications.email import EmailService, email_service
from crewleave.services.ratelimit import (
    RateLimiter,
    RedisRateLimiter,
    SlidingWindowRateLimiter,
)

security_scheme = HTTPBearer()


def _build_password_reset_limiter() -> RateLimiter:
    limit = settings.PASSWORD_RESET_RATE_LIMIT
    window = settings.PASSWORD_RESET_RATE_WINDOW_SECONDS
    if settings.RATE_LIMIT_REDIS_URL:
        client = redis.from_url(settings.RATE_LIMIT_REDIS_URL)
        return RedisRateLimiter(client, limit=limit, window_seconds=window)
    return SlidingWindowRateLimiter(limit=limit, window_seconds=window)


_password_reset_limiter = _build_password_reset_limiter()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory used by operations that own their transaction (and may retry it)."""
    return async_session_factory


def get_today() -> date:
    return datetime.now(timezone.utc).date()


def get_admission_policy() -> AdmissionPolicy:
    return AdmissionPolicy.from_settings(settings)


def get_admission_controller(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    policy: AdmissionPolicy = Depends(get_admission_policy),
    today: date = Depends(get_today),
) -> LeaveAdmissionController:
    return LeaveAdmissionController(session_factory, policy, today=lambda: today)


def get_password_reset_limiter() -> RateLimiter:
    return _password_reset_limiter


def get_email_service() -> EmailService:
    return email_service


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
    db: AsyncSession = Depends(get_db),
):
    from crewleave.models.user import User

    try:
        payload = decode_access_token(credentials.credentials)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    result = await db.execute(select(User).where(User.id == UUID(user_id)))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    return user
