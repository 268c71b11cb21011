from crewleave.models.user import User
from crewleave.models.invite import Invite
from crewleave.models.leave_balance import LeaveBalance
from crewleave.models.leave_request import LeaveRequest
from crewleave.models.holiday import Holiday
from crewleave.models.leave_settings import LeaveSettings
from crewleave.models.password_reset import PasswordResetToken

__all__ = [
    "User",
    "Invite",
    "LeaveBalance",
    "LeaveRequest",
    "Holiday",
    "LeaveSettings",
    "PasswordResetToken",
]
