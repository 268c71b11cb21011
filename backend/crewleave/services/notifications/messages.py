"""Plain-text bodies for the emails the service sends."""

from dataclasses import dataclass

from crewleave.core.config import settings


@dataclass(frozen=True)
class EmailMessage:
    subject: str
    body_text: str


def _days(count: int) -> str:
    return f"{count} leave day" if count == 1 else f"{count} leave days"


def invite_message(first_name: str, otp_code: str, inviter_name: str) -> EmailMessage:
    register_url = f"{settings.APP_URL.rstrip('/')}/register"
    return EmailMessage(
        subject=f"You're invited to {settings.APP_NAME}",
        body_text=(
            f"Hello {first_name},\n\n"
            f"{inviter_name} has invited you to {settings.APP_NAME}.\n"
            f"Your verification code is {otp_code}. It expires in "
            f"{settings.INVITE_EXPIRE_HOURS} hours.\n\n"
            f"Complete your registration at {register_url}\n"
        ),
    )


def password_reset_message(first_name: str, raw_token: str) -> EmailMessage:
    reset_url = f"{settings.APP_URL.rstrip('/')}/reset-password?token={raw_token}"
    return EmailMessage(
        subject="Reset your password",
        body_text=(
            f"Hello {first_name},\n\n"
            f"Use the link below to choose a new password. It expires in "
            f"{settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes.\n\n{reset_url}\n\n"
            "If you did not ask for this, you can ignore this email.\n"
        ),
    )


def reminder_message(
    full_name: str, year: int, allocated: int, used: int, remaining: int
) -> EmailMessage:
    dashboard_url = f"{settings.APP_URL.rstrip('/')}/dashboard"
    return EmailMessage(
        subject=f"Reminder: You have {_days(remaining)} remaining",
        body_text=(
            f"Hello {full_name},\n\n"
            f"This is a friendly reminder that you have {_days(remaining)} "
            f"remaining for {year}.\n\n"
            f"Allocated: {allocated} days\nUsed: {used} days\nRemaining: {remaining} days\n\n"
            f"Plan and submit your leave requests at {dashboard_url}\n"
        ),
    )
