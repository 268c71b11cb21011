"""Invite management (admin only)."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from crewleave.api.v1.schemas import InviteCreateRequest, InviteResponse
from crewleave.core.dependencies import get_db, get_email_service
from crewleave.core.security import require_role
from crewleave.models.invite import Invite
from crewleave.models.user import User
from crewleave.schemas.leave import SuccessResponse
from crewleave.services import onboarding
from crewleave.services.notifications.email import EmailService
from crewleave.services.notifications.messages import invite_message

router = APIRouter(prefix="/invites", tags=["invites"])


def _queue_invite_email(
    background_tasks: BackgroundTasks, email: EmailService, invite: Invite, inviter: User
) -> None:
    message = invite_message(invite.first_name, invite.otp_code, inviter.full_name)
    background_tasks.add_task(email.send, invite.email, message)


@router.post("", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
async def create_invite(
    body: InviteCreateRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
):
    invite = await onboarding.create_invite(
        db,
        current_user.id,
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        role=body.role,
        position=body.position,
        days_allocated=body.days_allocated,
    )
    _queue_invite_email(background_tasks, email, invite, current_user)
    return invite


@router.get("", response_model=list[InviteResponse])
async def list_invites(
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    """Unused, unexpired invites."""
    return await onboarding.list_pending_invites(db)


@router.post("/{invite_id}/revoke", response_model=SuccessResponse)
async def revoke_invite(
    invite_id: UUID,
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    await onboarding.revoke_invite(db, invite_id)
    return SuccessResponse()


@router.post("/{invite_id}/resend", response_model=InviteResponse)
async def resend_invite(
    invite_id: UUID,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
):
    invite = await onboarding.resend_invite(db, invite_id)
    _queue_invite_email(background_tasks, email, invite, current_user)
    return invite
