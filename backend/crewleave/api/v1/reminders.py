import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from crewleave.core.dependencies import (
    get_admission_policy,
    get_db,
    get_email_service,
    get_today,
)
from crewleave.core.security import require_role
from crewleave.models.user import User
from crewleave.schemas.dashboard import ReminderRequest
from crewleave.schemas.leave import SuccessResponse
from crewleave.services.leave.admission import AdmissionPolicy
from crewleave.services.notifications.email import EmailService
from crewleave.services.reminders import send_balance_reminder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.post("/send", response_model=SuccessResponse)
async def send_reminder(
    body: ReminderRequest,
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
    policy: AdmissionPolicy = Depends(get_admission_policy),
    today: date = Depends(get_today),
    email: EmailService = Depends(get_email_service),
):
    """Email a user how many leave days they have left this year."""
    sent = await send_balance_reminder(db, body.user_id, policy.balance_year(today), email)
    if not sent:
        logger.warning("Reminder email to user %s was not delivered", body.user_id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to send reminder email",
        )
    return SuccessResponse()
