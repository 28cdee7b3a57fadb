"""Email configuration and shared environment coercion helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
import os


@dataclass(frozen=True)
class EmailConfig:
    """Sender identity and SMTP settings for payment emails."""

    provider_name: str
    from_email: str
    from_name: str
    reply_to: Optional[str]
    smtp_host: str
    smtp_port: int
    smtp_username: Optional[str]
    smtp_password: Optional[str]
    smtp_use_tls: bool
    smtp_timeout: float


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_float(value: Optional[str], *, default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Expected number, got {value!r}") from exc


def load_email_config(env: Optional[Mapping[str, str]] = None) -> EmailConfig:
    """Load :class:`EmailConfig` from environment variables.

    ``EMAIL_PROVIDER`` selects ``smtp`` or the logging ``dev`` backend;
    anything else falls back to ``dev`` when the provider is built.
    """

    env_mapping = os.environ if env is None else env

    return EmailConfig(
        provider_name=(env_mapping.get("EMAIL_PROVIDER") or "dev").strip().lower() or "dev",
        from_email=env_mapping.get("FROM_EMAIL", "noreply@example.com").strip(),
        from_name=env_mapping.get("FROM_NAME", "OneStop Application Services").strip(),
        reply_to=(env_mapping.get("REPLY_TO_EMAIL") or "").strip() or None,
        smtp_host=env_mapping.get("SMTP_HOST", "localhost"),
        smtp_port=_to_int(env_mapping.get("SMTP_PORT"), default=587),
        smtp_username=env_mapping.get("SMTP_USER") or None,
        smtp_password=env_mapping.get("SMTP_PASS") or None,
        smtp_use_tls=_to_bool(env_mapping.get("SMTP_USE_TLS"), default=True),
        smtp_timeout=max(1.0, _to_float(env_mapping.get("SMTP_TIMEOUT"), default=10.0)),
    )


__all__ = ["EmailConfig", "load_email_config"]
