import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from jose import JWTError, jwt
from passlib.context import CryptContext

from crewleave.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    user_id: UUID | str, role: str, expires_delta: Optional[timedelta] = None
) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(user_id),
        "role": role,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verified claims. Bad signatures, malformed and expired tokens raise ValueError."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc


def generate_otp() -> str:
    """Six-digit one-time code for invites."""
    return f"{secrets.randbelow(900000) + 100000}"


def generate_reset_token() -> tuple[str, str]:
    """Return (raw token for the email link, sha256 hex stored in the database)."""
    raw = secrets.token_urlsafe(32)
    return raw, hash_token(raw)


def hash_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def require_role(*allowed_roles: str):
    """Dependency yielding the current user, or 403 unless their role is allowed.

        current_user: User = Depends(require_role("admin"))
    """
    from crewleave.core.dependencies import get_current_user

    async def checker(current_user=Depends(get_current_user)):
        if current_user.role in allowed_roles:
            return current_user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"{' or '.join(allowed_roles).capitalize()} access required",
        )

    return checker
