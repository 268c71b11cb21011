"""Seed script for the crew leave service.

Populates the database with demo data:
- 1 admin and 8 crew members (captains and first officers)
- a leave balance per crew member for the seed year
- the leave settings row (Saturday and Sunday excluded) and public holidays
- a few leave requests (pending, approved, denied); approved ones are
  already debited from their balance

Usage:
    cd backend && python seed.py
"""

import asyncio
import os
import sys
from datetime import date, datetime, timezone

from sqlalchemy import select

# Ensure the backend directory is on the path when running from backend/
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from crewleave.core.config import settings
from crewleave.core.database import async_session_factory
from crewleave.core.security import hash_password
from crewleave.models import Holiday, LeaveBalance, LeaveRequest, LeaveSettings, User
from crewleave.models.leave_request import APPROVED, DENIED, PENDING
from crewleave.models.leave_settings import SINGLETON_ID
from crewleave.services.leave.calendar_policy import WeekMode
from crewleave.services.leave.policy_store import load_calendar_policy
from crewleave.services.leave.working_days import chargeable_days

SEED_YEAR = settings.LEAVE_TARGET_YEAR or datetime.now(timezone.utc).year

ADMIN = {
    "first_name": "Dana", "last_name": "Okafor", "email": "admin@crewleave.dev",
    "role": "admin", "position": None,
}

CREW_DATA = [
    {"first_name": "Lena", "last_name": "Novak", "email": "lena.novak@crewleave.dev",
     "position": "captain", "days": 25},
    {"first_name": "Tomas", "last_name": "Reyes", "email": "tomas.reyes@crewleave.dev",
     "position": "captain", "days": 25},
    {"first_name": "Amara", "last_name": "Singh", "email": "amara.singh@crewleave.dev",
     "position": "captain", "days": 28},
    {"first_name": "Jonas", "last_name": "Berg", "email": "jonas.berg@crewleave.dev",
     "position": "captain", "days": 22},
    {"first_name": "Mei", "last_name": "Tanaka", "email": "mei.tanaka@crewleave.dev",
     "position": "first_officer", "days": 21},
    {"first_name": "Omar", "last_name": "Haddad", "email": "omar.haddad@crewleave.dev",
     "position": "first_officer", "days": 21},
    {"first_name": "Sofia", "last_name": "Rossi", "email": "sofia.rossi@crewleave.dev",
     "position": "first_officer", "days": 24},
    {"first_name": "Eli", "last_name": "Cohen", "email": "eli.cohen@crewleave.dev",
     "position": "first_officer", "days": 12},
]

HOLIDAYS = [
    ((1, 1), "New Year's Day"),
    ((5, 1), "Labour Day"),
    ((12, 25), "Christmas Day"),
    ((12, 26), "Boxing Day"),
]

# Saturday and Sunday
EXCLUDED_WEEKDAYS = [0, 6]

# (crew index, start, end, status, reason)
LEAVE_REQUESTS = [
    (0, (7, 6), (7, 17), APPROVED, "Summer holiday"),
    (1, (7, 13), (7, 24), APPROVED, "Family trip"),
    (2, (8, 3), (8, 14), PENDING, "Hiking"),
    (4, (9, 7), (9, 11), PENDING, None),
    (5, (10, 12), (10, 16), DENIED, "Conference"),
]


async def seed():
    """Seed the database with demo crew and leave data."""
    async with async_session_factory() as db:
        # 1. Check idempotency
        result = await db.execute(select(User).where(User.email == ADMIN["email"]))
        if result.scalar_one_or_none():
            print(f"Admin '{ADMIN['email']}' already exists. Skipping seed.")
            print("   To re-seed, reset the DB first.")
            return

        print(f"Starting database seed for {SEED_YEAR}...\n")
        hashed_pw = hash_password("password123")

        # 2. Calendar policy
        print("Creating leave settings and holidays...")
        db.add(LeaveSettings(id=SINGLETON_ID, excluded_weekdays=EXCLUDED_WEEKDAYS))
        for (month, day), name in HOLIDAYS:
            db.add(Holiday(holiday_date=date(SEED_YEAR, month, day), name=name))
        await db.flush()
        print(f"   {len(HOLIDAYS)} holidays, excluded weekdays {EXCLUDED_WEEKDAYS}")

        # 3. Users and balances
        print("\nCreating users and balances...")
        admin = User(hashed_password=hashed_pw, is_active=True, **ADMIN)
        db.add(admin)
        crew = []
        balances = []
        for data in CREW_DATA:
            user = User(
                email=data["email"],
                hashed_password=hashed_pw,
                first_name=data["first_name"],
                last_name=data["last_name"],
                role="employee",
                position=data["position"],
                is_active=True,
            )
            db.add(user)
            await db.flush()
            balance = LeaveBalance(
                user_id=user.id, year=SEED_YEAR, days_allocated=data["days"], days_used=0
            )
            db.add(balance)
            crew.append(user)
            balances.append(balance)
            print(f"   {user.full_name} ({user.position}, {data['days']} days)")
        await db.flush()

        # 4. Leave requests
        print("\nCreating leave requests...")
        week_mode = WeekMode(settings.LEAVE_WEEK_MODE)
        for idx, (sm, sd), (em, ed), status, reason in LEAVE_REQUESTS:
            start, end = date(SEED_YEAR, sm, sd), date(SEED_YEAR, em, ed)
            policy = await load_calendar_policy(db, week_mode, start, end)
            days = chargeable_days(start, end, policy)
            decided = status != PENDING
            db.add(
                LeaveRequest(
                    user_id=crew[idx].id,
                    start_date=start,
                    end_date=end,
                    days=days,
                    status=status,
                    reason=reason,
                    approved_by=admin.id if decided else None,
                    approved_at=datetime.now(timezone.utc) if decided else None,
                )
            )
            if status == APPROVED:
                balances[idx].days_used += days
            print(f"   {crew[idx].full_name}: {start} .. {end} ({days} days, {status})")

        # 5. Commit everything
        await db.commit()
        print("\n" + "=" * 60)
        print("Database seeding complete!")
        print("=" * 60)
        print(f"\nLogin credentials (all use password: password123):")
        print(f"   {'Email':<35} {'Role':<10} {'Name'}")
        print(f"   {'-'*35} {'-'*10} {'-'*20}")
        print(f"   {admin.email:<35} {'admin':<10} {admin.full_name}")
        for user in crew:
            print(f"   {user.email:<35} {'employee':<10} {user.full_name}")
        print()


# ── Entry Point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    asyncio.run(seed())
