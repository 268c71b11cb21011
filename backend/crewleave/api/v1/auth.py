"""Authentication endpoints: login, me, complete-registration, password reset and change."""

import logging
from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crewleave.api.v1.schemas import (
    ChangePasswordRequest,
    CompleteRegistrationRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ProfileUpdateRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
)
from crewleave.core.dependencies import (
    get_admission_policy,
    get_current_user,
    get_db,
    get_email_service,
    get_password_reset_limiter,
    get_session_factory,
    get_today,
)
from crewleave.core.security import create_access_token, verify_password
from crewleave.models.user import User
from crewleave.services import onboarding, users
from crewleave.services.leave.admission import AdmissionPolicy
from crewleave.services.notifications.email import EmailService
from crewleave.services.notifications.messages import password_reset_message
from crewleave.services.ratelimit import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_RESET_ACCEPTED = "If an account exists for this email, a reset link has been sent"


# ── POST /login ───────────────────────────────────────────────────────────────


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == body.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    token = create_access_token(user.id, user.role)
    return TokenResponse(access_token=token)


# ── POST /complete-registration ───────────────────────────────────────────────


@router.post("/complete-registration", response_model=TokenResponse, status_code=201)
async def complete_registration(
    body: CompleteRegistrationRequest,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    policy: AdmissionPolicy = Depends(get_admission_policy),
    today: date = Depends(get_today),
):
    """Redeem an invite code: creates the account and its leave balance."""
    user = await onboarding.complete_registration(
        session_factory,
        email=body.email,
        otp_code=body.otp_code,
        password=body.password,
        balance_year=policy.balance_year(today),
    )
    token = create_access_token(user.id, user.role)
    return TokenResponse(access_token=token)


# ── Password reset ────────────────────────────────────────────────────────────


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    limiter: RateLimiter = Depends(get_password_reset_limiter),
    email: EmailService = Depends(get_email_service),
):
    client_ip = request.client.host if request.client else "unknown"
    if not (
        await limiter.allow(f"ip:{client_ip}")
        and await limiter.allow(f"email:{body.email.lower()}")
    ):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests, please try again later",
        )

    issued = await onboarding.request_password_reset(db, body.email)
    if issued is not None:
        user, raw_token = issued
        message = password_reset_message(user.first_name, raw_token)
        background_tasks.add_task(email.send, user.email, message)
    return MessageResponse(message=_RESET_ACCEPTED)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(body: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    await onboarding.reset_password(db, body.token, body.password)
    return MessageResponse(message="Password has been reset")


# ── GET /me ───────────────────────────────────────────────────────────────────


@router.get("/me", response_model=UserResponse)
async def get_me(current_user=Depends(get_current_user)):
    """Return the current authenticated user's profile."""
    return current_user


@router.put("/me", response_model=UserResponse)
async def update_me(
    body: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Edit your own name and phone number."""
    return await users.update_user(db, current_user.id, body.model_dump(exclude_unset=True))


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await users.change_password(db, current_user, body.current_password, body.new_password)
    return MessageResponse(message="Password updated successfully")
