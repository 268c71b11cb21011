import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crewleave.core.config import settings
from crewleave.core.exceptions import LeaveError, leave_error_handler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: launch the reminder scheduler when an interval is configured
    from crewleave.services.reminders.scheduler import start_scheduler, stop_scheduler

    if settings.REMINDER_INTERVAL_HOURS > 0:
        start_scheduler(settings.REMINDER_INTERVAL_HOURS * 3600)
    yield
    # Shutdown: stop the reminder scheduler
    stop_scheduler()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(LeaveError, leave_error_handler)

# ── Routers ───────────────────────────────────────────────────────────────────
from crewleave.api.v1.auth import router as auth_router  # noqa: E402
from crewleave.api.v1.calendar import router as calendar_router  # noqa: E402
from crewleave.api.v1.dashboard import router as dashboard_router  # noqa: E402
from crewleave.api.v1.invites import router as invites_router  # noqa: E402
from crewleave.api.v1.leave import router as leave_router  # noqa: E402
from crewleave.api.v1.reminders import router as reminders_router  # noqa: E402
from crewleave.api.v1.settings import router as settings_router  # noqa: E402
from crewleave.api.v1.users import router as users_router  # noqa: E402

app.include_router(auth_router, prefix="/api/v1")
app.include_router(invites_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(leave_router, prefix="/api/v1")
app.include_router(settings_router, prefix="/api/v1")
app.include_router(calendar_router, prefix="/api/v1")
app.include_router(dashboard_router, prefix="/api/v1")
app.include_router(reminders_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": settings.APP_NAME}
