"""Pydantic schemas for auth, invite and onboarding endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field
from pydantic.alias_generators import to_camel


# ── Auth Schemas ──────────────────────────────────────────────────────────────


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    role: str
    position: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class CompleteRegistrationRequest(BaseModel):
    email: EmailStr
    otp_code: str = Field(..., min_length=6, max_length=6)
    password: str = Field(..., min_length=6)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class ProfileUpdateRequest(BaseModel):
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


# ── User Admin Schemas ────────────────────────────────────────────────────────


class UserUpdateRequest(ProfileUpdateRequest):
    role: Optional[str] = Field(None, pattern="^(admin|employee)$")
    position: Optional[str] = None
    is_active: Optional[bool] = None


# ── Invite Schemas ────────────────────────────────────────────────────────────


class InviteCreateRequest(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    role: str = Field(default="employee", pattern="^(admin|employee)$")
    position: Optional[str] = None
    days_allocated: int = Field(..., ge=0, le=366)


class InviteResponse(BaseModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    role: str
    position: Optional[str] = None
    days_allocated: int
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}
