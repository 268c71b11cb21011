"""Background loop that periodically sends remaining-balance reminders."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from crewleave.core.config import settings
from crewleave.core.database import async_session_factory
from crewleave.services.notifications.email import email_service
from crewleave.services.reminders.balance import run_balance_reminders

logger = logging.getLogger(__name__)

_scheduler_task: asyncio.Task | None = None


async def _scheduler_loop(interval: int) -> None:
    """Run reminders in a loop."""
    logger.info(
        "Reminder scheduler started (interval=%ds / %.1fh)",
        interval,
        interval / 3600,
    )
    while True:
        year = settings.LEAVE_TARGET_YEAR or datetime.now(timezone.utc).year
        try:
            async with async_session_factory() as db:
                count = await run_balance_reminders(db, year, email_service)
                logger.info("Scheduler tick complete: %d reminders", count)
        except Exception:
            logger.exception("Error during scheduled reminder run")

        await asyncio.sleep(interval)


def start_scheduler(interval: int) -> None:
    """Start the background scheduler as an asyncio task.

    Safe to call multiple times, only one scheduler will run.
    """
    global _scheduler_task
    if _scheduler_task is not None and not _scheduler_task.done():
        logger.warning("Scheduler already running, skipping start")
        return

    _scheduler_task = asyncio.create_task(
        _scheduler_loop(interval),
        name="reminder-scheduler",
    )
    logger.info("Reminder scheduler task created")


def stop_scheduler() -> None:
    """Stop the background scheduler if running."""
    global _scheduler_task
    if _scheduler_task is not None and not _scheduler_task.done():
        _scheduler_task.cancel()
        logger.info("Reminder scheduler cancelled")
    _scheduler_task = None
