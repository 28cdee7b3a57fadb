"""Outbound email delivery backends."""
from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Dict, Optional

from .config import EmailConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundEmail:
    """A rendered message ready for delivery."""

    to: str
    subject: str
    text_body: str
    html_body: str
    reply_to: Optional[str] = None


class EmailProvider:
    """Base provider; subclasses deliver an :class:`OutboundEmail` or raise."""

    name = "base"

    def __init__(self, *, from_email: str, from_name: str = "") -> None:
        self.from_email = from_email
        self.from_name = from_name

    @property
    def sender(self) -> str:
        return formataddr((self.from_name, self.from_email)) if self.from_name else self.from_email

    def send(self, message: OutboundEmail) -> None:
        raise NotImplementedError

    def describe(self) -> Dict[str, str]:
        return {"email_provider": self.name, "email_sender": self.sender}


class DevPrintProvider(EmailProvider):
    """Logs messages instead of sending them."""

    name = "dev"

    def send(self, message: OutboundEmail) -> None:
        logger.info(
            "Dev email dispatch",
            extra={
                "email_recipient": message.to,
                "email_subject": message.subject,
                "email_sender": self.sender,
            },
        )


class SMTPProvider(EmailProvider):
    name = "smtp"

    def __init__(self, config: EmailConfig) -> None:
        super().__init__(from_email=config.from_email, from_name=config.from_name)
        self.host = config.smtp_host
        self.port = config.smtp_port
        self.username = config.smtp_username
        self.password = config.smtp_password
        self.use_tls = config.smtp_use_tls
        self.timeout = config.smtp_timeout

    def compose(self, message: OutboundEmail) -> EmailMessage:
        mime = EmailMessage()
        mime["From"] = self.sender
        mime["To"] = message.to
        mime["Subject"] = message.subject
        if message.reply_to:
            mime["Reply-To"] = message.reply_to
        mime.set_content(message.text_body)
        mime.add_alternative(message.html_body, subtype="html")
        return mime

    def send(self, message: OutboundEmail) -> None:
        mime = self.compose(message)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
            if self.use_tls:
                client.starttls()
            if self.username and self.password:
                client.login(self.username, self.password)
            client.send_message(mime)
        logger.info("Email %r sent to %s via %s:%s", message.subject, message.to, self.host, self.port)


def create_email_provider(config: EmailConfig) -> EmailProvider:
    if config.provider_name == "smtp":
        return SMTPProvider(config)
    if config.provider_name != "dev":
        logger.warning("Unknown EMAIL_PROVIDER %r; falling back to dev logging", config.provider_name)
    return DevPrintProvider(from_email=config.from_email, from_name=config.from_name)


__all__ = [
    "DevPrintProvider",
    "EmailProvider",
    "OutboundEmail",
    "SMTPProvider",
    "create_email_provider",
]
