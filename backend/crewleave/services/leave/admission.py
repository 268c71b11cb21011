"""Leave request admission and lifecycle.

Submission gates, in order of evaluation:

1. dates: start not in the past, start <= end, range inside one calendar year
   (and inside the configured target year, when there is one);
2. chargeable days under the current calendar policy must be at least one;
3. a balance row must exist for the year;
4. first-booking rule (only until the user has an approved request);
5. chargeable days must fit in the remaining balance;
6. no overlap with the user's own pending/approved requests;
7. no day of the range may already be at capacity for the user's position.

Admin-direct-add runs the same gates except the first-booking rule and writes
the request as approved together with the balance debit. Approval re-runs the
balance and capacity gates (5 and 7) against the locked rows, then debits.
Deletion of an approved request credits, denial and cancellation leave the
balance alone. Every operation is one transaction.

State machine::

    pending --approve--> approved --delete--> (gone, balance credited)
    pending --deny-----> denied
    pending --cancel---> cancelled
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crewleave.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StateError,
    ValidationError,
)
from crewleave.models.leave_request import (
    APPROVED,
    CANCELLED,
    DENIED,
    PENDING,
    LeaveRequest,
)
from crewleave.models.user import User
from crewleave.services.leave.calendar_policy import DateLike, WeekMode, to_utc_date
from crewleave.services.leave.capacity import DEFAULT_CAPACITY, capacity_exceeded, disabled_dates
from crewleave.services.leave.ledger import BalanceLedger, BalanceSnapshot
from crewleave.services.leave.overlap import has_overlap
from crewleave.services.leave.policy_store import load_calendar_policy
from crewleave.services.leave.transaction import run_in_transaction
from crewleave.services.leave.working_days import chargeable_days, span_days

logger = logging.getLogger(__name__)

ADMIN_ADD_REASON = "Added by admin"


class FirstBookingRule(str, enum.Enum):
    OFF = "off"
    # first booking must span at least N calendar days
    UNCONDITIONAL = "unconditional"
    # as above, unless fewer than N days remain: then it must use all of them
    BALANCE_AWARE = "balance_aware"


@dataclass(frozen=True)
class AdmissionPolicy:
    week_mode: WeekMode = WeekMode.FIVE_DAY
    first_booking_rule: FirstBookingRule = FirstBookingRule.OFF
    min_first_booking_days: int = 14
    position_capacity: int = DEFAULT_CAPACITY
    target_year: Optional[int] = None

    @classmethod
    def from_settings(cls, settings: Any) -> "AdmissionPolicy":
        return cls(
            week_mode=WeekMode(settings.LEAVE_WEEK_MODE),
            first_booking_rule=FirstBookingRule(settings.LEAVE_FIRST_BOOKING_RULE),
            min_first_booking_days=settings.LEAVE_MIN_FIRST_BOOKING_DAYS,
            position_capacity=settings.LEAVE_POSITION_CAPACITY,
            target_year=settings.LEAVE_TARGET_YEAR,
        )

    def balance_year(self, today: date) -> int:
        return self.target_year or today.year


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _plural(count: int) -> str:
    return "day" if count == 1 else "days"


def check_first_booking(
    policy: AdmissionPolicy, span: int, days: int, remaining: int
) -> Optional[str]:
    """Rejection message for a first booking, or None when it is acceptable."""
    minimum = policy.min_first_booking_days
    if policy.first_booking_rule is FirstBookingRule.OFF or span >= minimum:
        return None
    if policy.first_booking_rule is FirstBookingRule.BALANCE_AWARE and remaining < minimum:
        if days == remaining:
            return None
        return (
            f"Your first booking must be at least {minimum} consecutive days "
            f"or use all of your {remaining} remaining {_plural(remaining)}"
        )
    return f"Your first booking must be at least {minimum} consecutive days"


@dataclass(frozen=True)
class Admission:
    days: int
    year: int
    balance: BalanceSnapshot


class LeaveAdmissionController:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        policy: AdmissionPolicy,
        today: Callable[[], date] = utc_today,
    ):
        self.session_factory = session_factory
        self.policy = policy
        self.today = today

    # ── gates ────────────────────────────────────────────────────────────────

    def _validate_dates(self, start: date, end: date) -> None:
        if start < self.today():
            raise ValidationError("Start date cannot be in the past")
        if end < start:
            raise ValidationError("End date cannot be before start date")
        if start.year != end.year:
            raise ValidationError("Leave must start and end in the same calendar year")
        target = self.policy.target_year
        if target is not None and start.year != target:
            raise ValidationError(f"Leave can only be booked within {target}")

    @staticmethod
    def _check_balance(days: int, balance: BalanceSnapshot, *, on_behalf: bool) -> None:
        if days > balance.remaining:
            who = "User has" if on_behalf else "You have"
            raise ConflictError(
                f"Insufficient leave balance. {who} {balance.remaining} "
                f"{_plural(balance.remaining)} remaining, but requested {days} {_plural(days)}."
            )

    async def _check_capacity(self, db: AsyncSession, user: User, start: date, end: date) -> None:
        if not user.position:
            return
        capacity = await capacity_exceeded(
            db,
            user.position,
            start,
            end,
            exclude_user_id=user.id,
            cap=self.policy.position_capacity,
            lock=True,
        )
        if not capacity.allowed:
            raise ConflictError(
                f"Maximum leave capacity for {user.position.replace('_', ' ')}s "
                f"is reached on {capacity.first_conflict_date.isoformat()}"
            )

    async def _admit(
        self,
        db: AsyncSession,
        user: User,
        start: date,
        end: date,
        *,
        first_booking_rule: bool,
        on_behalf: bool = False,
    ) -> Admission:
        self._validate_dates(start, end)

        calendar = await load_calendar_policy(db, self.policy.week_mode, start, end)
        days = chargeable_days(start, end, calendar)
        if days <= 0:
            raise ValidationError("Leave request must include at least one working day")

        year = start.year
        ledger = BalanceLedger(db)
        balance = await ledger.remaining(user.id, year, lock=True)

        if first_booking_rule and not await has_approved_request(db, user.id):
            message = check_first_booking(
                self.policy, span_days(start, end), days, balance.remaining
            )
            if message:
                raise ValidationError(message)

        self._check_balance(days, balance, on_behalf=on_behalf)

        if await has_overlap(db, user.id, start, end):
            who = "User already has" if on_behalf else "You already have"
            raise ConflictError(f"{who} a leave request for overlapping dates")

        await self._check_capacity(db, user, start, end)

        return Admission(days=days, year=year, balance=balance)

    # ── operations ───────────────────────────────────────────────────────────

    async def submit(
        self,
        user_id: UUID,
        start_date: DateLike,
        end_date: DateLike,
        reason: Optional[str] = None,
    ) -> LeaveRequest:
        """Employee submission: admitted requests are stored as pending, no debit."""
        start, end = to_utc_date(start_date), to_utc_date(end_date)

        async def operation(db: AsyncSession) -> LeaveRequest:
            user = await _get_user(db, user_id)
            admission = await self._admit(
                db, user, start, end, first_booking_rule=True
            )
            leave_request = LeaveRequest(
                user_id=user.id,
                start_date=start,
                end_date=end,
                days=admission.days,
                status=PENDING,
                reason=reason,
            )
            db.add(leave_request)
            await db.flush()
            return leave_request

        try:
            leave_request = await run_in_transaction(
                self.session_factory, operation, name="submit leave request"
            )
        except (ValidationError, ConflictError, NotFoundError) as exc:
            logger.info("Rejected leave request for user %s %s..%s: %s", user_id, start, end, exc.message)
            raise
        logger.info(
            "Leave request %s submitted by user %s (%d days)",
            leave_request.id,
            user_id,
            leave_request.days,
        )
        return leave_request

    async def admin_add(
        self,
        admin_id: UUID,
        user_id: UUID,
        start_date: DateLike,
        end_date: DateLike,
        reason: Optional[str] = None,
    ) -> LeaveRequest:
        """Admin places leave directly as approved and debits in the same transaction."""
        start, end = to_utc_date(start_date), to_utc_date(end_date)

        async def operation(db: AsyncSession) -> LeaveRequest:
            user = await _get_user(db, user_id)
            admission = await self._admit(
                db, user, start, end, first_booking_rule=False, on_behalf=True
            )
            leave_request = LeaveRequest(
                user_id=user.id,
                start_date=start,
                end_date=end,
                days=admission.days,
                status=APPROVED,
                reason=reason or ADMIN_ADD_REASON,
                approved_by=admin_id,
                approved_at=datetime.now(timezone.utc),
            )
            db.add(leave_request)
            await db.flush()
            await BalanceLedger(db).debit(user.id, admission.year, admission.days)
            return leave_request

        leave_request = await run_in_transaction(
            self.session_factory, operation, name="admin add leave"
        )
        logger.info(
            "Admin %s added approved leave %s for user %s (%d days)",
            admin_id,
            leave_request.id,
            user_id,
            leave_request.days,
        )
        return leave_request

    async def approve(
        self, request_id: UUID, approver_id: UUID, admin_notes: Optional[str] = None
    ) -> LeaveRequest:
        """Approve a pending request and debit its days.

        Balance and capacity are checked again here: pending requests hold
        neither, so several of them can be admitted against the same days.
        """

        async def operation(db: AsyncSession) -> LeaveRequest:
            leave_request = await _get_request(db, request_id, lock=True)
            if leave_request.status != PENDING:
                raise StateError("Only pending requests can be approved")
            owner = await _get_user(db, leave_request.user_id)
            year = leave_request.start_date.year
            ledger = BalanceLedger(db)
            balance = await ledger.remaining(owner.id, year, lock=True)
            self._check_balance(leave_request.days, balance, on_behalf=True)
            await self._check_capacity(
                db, owner, leave_request.start_date, leave_request.end_date
            )

            _record_decision(leave_request, APPROVED, approver_id, admin_notes)
            await db.flush()
            await ledger.debit(owner.id, year, leave_request.days)
            return leave_request

        try:
            leave_request = await run_in_transaction(
                self.session_factory, operation, name="approve leave request"
            )
        except ConflictError as exc:
            logger.info("Refused approval of leave request %s: %s", request_id, exc.message)
            raise
        logger.info("Leave request %s approved by %s", request_id, approver_id)
        return leave_request

    async def deny(
        self, request_id: UUID, approver_id: UUID, admin_notes: Optional[str] = None
    ) -> LeaveRequest:
        async def operation(db: AsyncSession) -> LeaveRequest:
            leave_request = await _get_request(db, request_id, lock=True)
            if leave_request.status != PENDING:
                raise StateError("Only pending requests can be denied")
            _record_decision(leave_request, DENIED, approver_id, admin_notes)
            await db.flush()
            return leave_request

        leave_request = await run_in_transaction(
            self.session_factory, operation, name="deny leave request"
        )
        logger.info("Leave request %s denied by %s", request_id, approver_id)
        return leave_request

    async def cancel(self, request_id: UUID, actor_id: UUID, is_admin: bool = False) -> LeaveRequest:
        async def operation(db: AsyncSession) -> LeaveRequest:
            leave_request = await _get_request(db, request_id, lock=True)
            if leave_request.user_id != actor_id and not is_admin:
                raise ForbiddenError("You can only cancel your own leave requests")
            if leave_request.status != PENDING:
                raise StateError("Only pending leave requests can be cancelled")
            leave_request.status = CANCELLED
            leave_request.updated_at = datetime.now(timezone.utc)
            await db.flush()
            return leave_request

        leave_request = await run_in_transaction(
            self.session_factory, operation, name="cancel leave request"
        )
        logger.info("Leave request %s cancelled by %s", request_id, actor_id)
        return leave_request

    async def delete(self, request_id: UUID) -> int:
        """Hard-delete a request. Returns the days credited back (0 unless it was approved)."""

        async def operation(db: AsyncSession) -> int:
            leave_request = await _get_request(db, request_id, lock=True)
            restored = 0
            if leave_request.status == APPROVED:
                await BalanceLedger(db).credit(
                    leave_request.user_id,
                    leave_request.start_date.year,
                    leave_request.days,
                )
                restored = leave_request.days
            await db.delete(leave_request)
            await db.flush()
            return restored

        restored = await run_in_transaction(
            self.session_factory, operation, name="delete leave request"
        )
        logger.info("Leave request %s deleted (%d days restored)", request_id, restored)
        return restored

    async def disabled_dates(
        self, position: str, exclude_user_id: Optional[UUID] = None
    ) -> list[date]:
        """Days of the booking year already at capacity for the position."""
        year = self.policy.balance_year(self.today())

        async def operation(db: AsyncSession) -> list[date]:
            return await disabled_dates(
                db,
                position,
                date(year, 1, 1),
                date(year, 12, 31),
                exclude_user_id=exclude_user_id,
                cap=self.policy.position_capacity,
            )

        return await run_in_transaction(
            self.session_factory, operation, name="position capacity"
        )


async def has_approved_request(db: AsyncSession, user_id: UUID) -> bool:
    count = await db.scalar(
        select(func.count())
        .select_from(LeaveRequest)
        .where(LeaveRequest.user_id == user_id, LeaveRequest.status == APPROVED)
    )
    return bool(count)


async def _get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _get_request(db: AsyncSession, request_id: UUID, *, lock: bool = False) -> LeaveRequest:
    query = select(LeaveRequest).where(LeaveRequest.id == request_id)
    if lock:
        query = query.with_for_update()
    leave_request = (await db.execute(query)).scalar_one_or_none()
    if leave_request is None:
        raise NotFoundError("Leave request not found")
    return leave_request


def _record_decision(
    leave_request: LeaveRequest, status: str, approver_id: UUID, admin_notes: Optional[str]
) -> None:
    now = datetime.now(timezone.utc)
    leave_request.status = status
    leave_request.approved_by = approver_id
    leave_request.approved_at = now
    leave_request.admin_notes = admin_notes
    leave_request.updated_at = now
