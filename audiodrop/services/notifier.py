"""Best-effort email delivery over SMTP."""

from __future__ import annotations

import logging
from email.message import EmailMessage
from typing import TYPE_CHECKING

import aiosmtplib

if TYPE_CHECKING:
    from audiodrop.config import AppConfig

logger = logging.getLogger(__name__)


class Notifier:
    """Sends plain-text messages to end users.

    Fire-and-forget: failures are logged and reported through the return
    value only. There are no retries.
    """

    def __init__(self, config: "AppConfig") -> None:
        self.config = config

    def _build_message(self, sender: str, to: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = sender
        message["To"] = to
        message["Subject"] = self.config.email_subject
        message.set_content(body)
        return message

    async def send(self, to: str, body: str) -> bool:
        """Send `body` to `to`.

        Credentials are read from the config on every call so a reloaded
        config takes effect without restarting workers.

        Returns:
            True if the SMTP server accepted the message, False otherwise.
        """
        sender = self.config.email_user
        password = self.config.email_password
        if not sender or not password:
            logger.warning("Email credentials not set; not sending email to %s", to)
            return False

        try:
            message = self._build_message(sender, to, body)
            await aiosmtplib.send(
                message,
                hostname=self.config.smtp_host,
                port=self.config.smtp_port,
                username=sender,
                password=password,
                start_tls=self.config.smtp_start_tls,
                timeout=self.config.smtp_timeout_seconds,
            )
        except Exception as e:
            # Never propagate transport errors into the job pipeline.
            logger.error("Error sending email to %s: %s", to, e)
            return False

        logger.info("Email sent to %s", to)
        return True
