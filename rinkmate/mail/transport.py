"""Outbound email transport."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import formataddr

from rinkmate.config import Settings

LOGGER = logging.getLogger(__name__)


class EmailTransport(ABC):
    """Delivers a rendered message. Returns True only when it was accepted."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
        from_name: str | None = None,
        reply_to: str | None = None,
    ) -> bool:
        """Send one message."""


class SmtpEmailTransport(EmailTransport):
    """SMTP delivery on a worker thread."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
        from_name: str | None = None,
        reply_to: str | None = None,
    ) -> bool:
        sender = self._settings.smtp_from or self._settings.smtp_user
        if not sender:
            LOGGER.error("SMTP_FROM/SMTP_USER not configured; cannot send email to %s", to)
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((from_name, sender)) if from_name else sender
        message["To"] = to
        if reply_to:
            message["Reply-To"] = reply_to
        message.set_content(text_body or "")
        message.add_alternative(html_body, subtype="html")

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError):
            LOGGER.exception("Failed to send email to %s", to)
            return False
        LOGGER.info("Email sent to %s (subject=%r)", to, subject)
        return True

    def _deliver(self, message: EmailMessage) -> None:
        settings = self._settings
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.request_timeout_seconds) as smtp:
            if settings.smtp_starttls:
                smtp.starttls()
            if settings.smtp_user and settings.smtp_password:
                smtp.login(settings.smtp_user, settings.smtp_password)
            smtp.send_message(message)
