"""Per-user, per-year leave balance bookkeeping.

The ledger is advisory: it does not refuse a debit that overdraws the
allocation, that check belongs to admission. It runs inside the caller's
session so debits and credits commit or roll back together with the request
status change that caused them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewleave.core.exceptions import IntegrityError, NotFoundError
from crewleave.models.leave_balance import LeaveBalance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceSnapshot:
    year: int
    allocated: int
    used: int

    @property
    def remaining(self) -> int:
        return self.allocated - self.used


class BalanceLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, user_id: UUID, year: int, *, lock: bool) -> LeaveBalance:
        query = select(LeaveBalance).where(
            LeaveBalance.user_id == user_id,
            LeaveBalance.year == year,
        )
        if lock:
            query = query.with_for_update()
        balance = (await self.db.execute(query)).scalar_one_or_none()
        if balance is None:
            raise NotFoundError(f"Leave balance not found for {year}")
        return balance

    async def remaining(self, user_id: UUID, year: int, *, lock: bool = False) -> BalanceSnapshot:
        """Raises NotFoundError when the user has no allocation for the year."""
        balance = await self._load(user_id, year, lock=lock)
        return BalanceSnapshot(
            year=balance.year,
            allocated=balance.days_allocated,
            used=balance.days_used,
        )

    async def debit(self, user_id: UUID, year: int, days: int) -> BalanceSnapshot:
        balance = await self._load(user_id, year, lock=True)
        balance.days_used += days
        balance.updated_at = datetime.now(timezone.utc)
        await self.db.flush()
        logger.info("Debited %d day(s) from user %s for %d", days, user_id, year)
        return BalanceSnapshot(balance.year, balance.days_allocated, balance.days_used)

    async def credit(self, user_id: UUID, year: int, days: int) -> BalanceSnapshot:
        """Return days to the balance. Crediting below zero used days is refused."""
        balance = await self._load(user_id, year, lock=True)
        if balance.days_used - days < 0:
            logger.error(
                "Refusing credit of %d day(s) to user %s for %d: only %d used",
                days,
                user_id,
                year,
                balance.days_used,
            )
            raise IntegrityError("Leave balance is inconsistent with this request")
        balance.days_used -= days
        balance.updated_at = datetime.now(timezone.utc)
        await self.db.flush()
        logger.info("Credited %d day(s) to user %s for %d", days, user_id, year)
        return BalanceSnapshot(balance.year, balance.days_allocated, balance.days_used)
