"""Outgoing mail collaborator (password reset links only)."""

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage

from src.config.settings import settings

logger = logging.getLogger(__name__)


class Mailer(ABC):
    """Sends a single HTML message. Implementations raise on delivery failure."""

    @abstractmethod
    async def send(self, to: str, subject: str, html: str) -> None: ...


class SMTPMailer(Mailer):
    """SMTP delivery using the configured relay.

    smtplib is blocking, so each message is sent from a worker thread.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        sender: str = "no-reply@localhost",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender

    def _build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(message)

    async def send(self, to: str, subject: str, html: str) -> None:
        message = self._build_message(to, subject, html)
        await asyncio.to_thread(self._send_sync, message)
        logger.info(f"Mail sent to {to}: {subject}")


def get_mailer() -> Mailer:
    """FastAPI dependency returning the configured mailer."""
    return SMTPMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        sender=settings.mail_from,
    )
