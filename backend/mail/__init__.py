"""Outbound email configuration, providers and templates."""

from .config import EmailConfig, load_email_config
from .providers import DevPrintProvider, EmailProvider, OutboundEmail, SMTPProvider, create_email_provider
from .renderer import render_email, render_subject_body

__all__ = [
    "DevPrintProvider",
    "EmailConfig",
    "EmailProvider",
    "OutboundEmail",
    "SMTPProvider",
    "create_email_provider",
    "load_email_config",
    "render_email",
    "render_subject_body",
]
