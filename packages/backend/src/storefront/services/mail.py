"""Outbound mail — confirmation emails.

Learn: The auth workflow only knows `await mailer.send(to, subject, html)`.
Which dispatcher backs that call is a deployment choice:

- console → logs the message (development; the confirmation link shows
  up in the server log)
- smtp    → stdlib smtplib, run in a worker thread so the event loop
  is never blocked on the SMTP conversation

Tests override get_mailer with a recording dispatcher.
"""

import asyncio
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage

import structlog

from storefront.config import settings

logger = structlog.get_logger()


class MailDispatcher(ABC):
    """Abstract base for mail transports."""

    @abstractmethod
    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        """Deliver one HTML email. Raises on transport failure."""


class ConsoleMailDispatcher(MailDispatcher):
    """Writes the message to the log instead of sending it."""

    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        logger.info(
            "storefront.mail.console",
            to=to_address,
            subject=subject,
            body=html_body,
        )


class SmtpMailDispatcher(MailDispatcher):
    """Sends through an SMTP relay (SendGrid, Postmark, a local MTA, ...)."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def build_message(self, to_address: str, subject: str, html_body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to_address
        msg["Subject"] = subject
        msg.set_content("Please view this message in an HTML-capable mail client.")
        msg.add_alternative(html_body, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)

    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        msg = self.build_message(to_address, subject, html_body)
        await asyncio.to_thread(self._deliver, msg)
        logger.info("storefront.mail.sent", to=to_address, subject=subject)


def get_mailer() -> MailDispatcher:
    """FastAPI dependency — dispatcher selected by STOREFRONT_MAIL_BACKEND."""
    if settings.mail_backend == "smtp":
        return SmtpMailDispatcher(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.mail_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout_seconds,
        )
    if settings.mail_backend == "console":
        return ConsoleMailDispatcher()
    raise ValueError(f"Unknown mail backend: {settings.mail_backend!r}")
