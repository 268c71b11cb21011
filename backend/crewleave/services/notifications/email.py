"""Outbound mail for invite codes, password reset links and balance reminders.

SendGrid is used when an API key is configured, SMTP when an SMTP user is.
Delivery problems are logged and reported as False so that the operation that
triggered the mail is never rolled back because of it.
"""

import asyncio
import logging
import smtplib
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

import httpx

from crewleave.core.config import settings
from crewleave.services.notifications.messages import EmailMessage

logger = logging.getLogger(__name__)


class EmailService:
    SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    @property
    def provider(self) -> Optional[str]:
        if settings.SENDGRID_API_KEY:
            return "sendgrid"
        if settings.SMTP_USER:
            return "smtp"
        return None

    async def send(self, to: str, message: EmailMessage) -> bool:
        provider = self.provider
        if provider is None:
            logger.warning("No email provider configured, dropping '%s' for %s", message.subject, to)
            return False

        if provider == "sendgrid":
            delivered = await self._send_sendgrid(to, message)
        else:
            # smtplib blocks; keep it off the event loop
            delivered = await asyncio.to_thread(self._send_smtp, to, message)
        if delivered:
            logger.info("Sent '%s' to %s via %s", message.subject, to, provider)
        return delivered

    @staticmethod
    def sendgrid_payload(to: str, message: EmailMessage) -> dict:
        return {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": settings.SMTP_FROM_EMAIL, "name": settings.APP_NAME},
            "subject": message.subject,
            "content": [{"type": "text/plain", "value": message.body_text}],
        }

    async def _send_sendgrid(self, to: str, message: EmailMessage) -> bool:
        async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as client:
            try:
                resp = await client.post(
                    self.SENDGRID_URL,
                    json=self.sendgrid_payload(to, message),
                    headers={"Authorization": f"Bearer {settings.SENDGRID_API_KEY}"},
                )
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(
                    "SendGrid refused mail to %s: %s %s",
                    to,
                    e.response.status_code,
                    e.response.text,
                )
                return False
            except httpx.HTTPError:
                logger.exception("SendGrid request for %s failed", to)
                return False
        return True

    def _send_smtp(self, to: str, message: EmailMessage) -> bool:
        mime = MIMEText(message.body_text, "plain", "utf-8")
        mime["From"] = formataddr((settings.APP_NAME, settings.SMTP_FROM_EMAIL))
        mime["To"] = to
        mime["Subject"] = message.subject

        try:
            with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
                if settings.SMTP_USE_TLS:
                    server.starttls()
                if settings.SMTP_PASSWORD:
                    server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
                server.send_message(mime)
        except (smtplib.SMTPException, OSError):
            logger.exception("SMTP delivery to %s failed", to)
            return False
        return True


email_service = EmailService()
