"""Leave eligibility and capacity engine."""

from crewleave.services.leave.admission import (
    AdmissionPolicy,
    FirstBookingRule,
    LeaveAdmissionController,
)
from crewleave.services.leave.calendar_policy import CalendarPolicy, WeekMode
from crewleave.services.leave.capacity import CapacityResult, capacity_exceeded
from crewleave.services.leave.ledger import BalanceLedger, BalanceSnapshot
from crewleave.services.leave.overlap import has_overlap, ranges_overlap
from crewleave.services.leave.working_days import chargeable_days

__all__ = [
    "AdmissionPolicy",
    "BalanceLedger",
    "BalanceSnapshot",
    "CalendarPolicy",
    "CapacityResult",
    "FirstBookingRule",
    "LeaveAdmissionController",
    "WeekMode",
    "capacity_exceeded",
    "chargeable_days",
    "has_overlap",
    "ranges_overlap",
]
