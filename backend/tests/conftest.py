import os

# The module-level engine must not need a Postgres driver under test.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SENDGRID_API_KEY", "")
os.environ.setdefault("SMTP_USER", "")

import uuid
from datetime import date
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from crewleave.core.database import Base
from crewleave.core.security import create_access_token
from crewleave.models import LeaveBalance, LeaveSettings, User
from crewleave.models.leave_settings import SINGLETON_ID
from crewleave.services.leave.admission import AdmissionPolicy, LeaveAdmissionController
from crewleave.services.notifications.email import EmailService
from crewleave.services.ratelimit import SlidingWindowRateLimiter

# Friday; every store-backed test books leave in 2026.
TODAY = date(2026, 1, 2)
YEAR = 2026


class RecordingEmailService(EmailService):
    """Collects outgoing mail instead of sending it."""

    def __init__(self, result: bool = True):
        self.result = result
        self.sent: list[dict] = []

    async def send(self, to, message) -> bool:
        self.sent.append({"to": to, "subject": message.subject, "body": message.body_text})
        return self.result


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'crewleave.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def weekend_excluded(session_factory):
    """Saturday and Sunday are not chargeable."""
    async with session_factory() as session:
        session.add(LeaveSettings(id=SINGLETON_ID, excluded_weekdays=[0, 6]))
        await session.commit()


@pytest.fixture
def make_user(session_factory):
    async def _make_user(
        *,
        position: Optional[str] = "captain",
        allocated: Optional[int] = 25,
        used: int = 0,
        role: str = "employee",
        email: Optional[str] = None,
        password_hash: str = "not-a-real-hash",
    ) -> User:
        async with session_factory() as session:
            user = User(
                email=email or f"crew-{uuid.uuid4().hex[:8]}@example.com",
                hashed_password=password_hash,
                first_name="Test",
                last_name=uuid.uuid4().hex[:6],
                role=role,
                position=position,
                is_active=True,
            )
            session.add(user)
            await session.flush()
            if allocated is not None:
                session.add(
                    LeaveBalance(
                        user_id=user.id, year=YEAR, days_allocated=allocated, days_used=used
                    )
                )
            await session.commit()
            return user

    return _make_user


@pytest.fixture
def policy() -> AdmissionPolicy:
    return AdmissionPolicy()


@pytest.fixture
def controller(session_factory, policy, weekend_excluded) -> LeaveAdmissionController:
    return LeaveAdmissionController(session_factory, policy, today=lambda: TODAY)


@pytest.fixture
def outbox() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def reset_limiter() -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(limit=2, window_seconds=900)


@pytest.fixture
async def client(session_factory, weekend_excluded, outbox, reset_limiter):
    from crewleave.core.dependencies import (
        get_db,
        get_email_service,
        get_password_reset_limiter,
        get_session_factory,
        get_today,
    )
    from crewleave.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_today] = lambda: TODAY
    app.dependency_overrides[get_email_service] = lambda: outbox
    app.dependency_overrides[get_password_reset_limiter] = lambda: reset_limiter

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers
