"""Configuration for payment processing and payment notifications."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from ...mail.config import _to_float, _to_int
from .signature import DEFAULT_TOLERANCE_SECONDS


@dataclass(frozen=True)
class PaymentConfig:
    """Provider credentials, webhook limits and checkout pricing."""

    stripe_secret_key: str
    webhook_signing_secret: str
    signature_tolerance: int
    handler_timeout: float
    provider_timeout: float
    checkout_origin: str
    appointment_deposit_cents: int
    rental_listing_monthly_cents: int
    currency: str


@dataclass(frozen=True)
class NotificationConfig:
    """Recipients and credentials for post-payment notifications."""

    team_email: Optional[str]
    whatsapp_access_token: Optional[str]
    whatsapp_phone_number_id: Optional[str]
    admin_whatsapp_number: Optional[str]
    whatsapp_api_version: str
    timeout: float

    @property
    def whatsapp_enabled(self) -> bool:
        return bool(self.whatsapp_access_token and self.whatsapp_phone_number_id and self.admin_whatsapp_number)


def load_payment_config(env: Optional[Mapping[str, str]] = None) -> PaymentConfig:
    """Load :class:`PaymentConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    return PaymentConfig(
        stripe_secret_key=(env_mapping.get("STRIPE_SECRET_KEY") or "").strip(),
        webhook_signing_secret=(env_mapping.get("STRIPE_WEBHOOK_SIGNING_SECRET") or "").strip(),
        signature_tolerance=max(
            1, _to_int(env_mapping.get("STRIPE_SIGNATURE_TOLERANCE"), default=DEFAULT_TOLERANCE_SECONDS)
        ),
        handler_timeout=max(1.0, _to_float(env_mapping.get("WEBHOOK_HANDLER_TIMEOUT"), default=15.0)),
        provider_timeout=max(1.0, _to_float(env_mapping.get("STRIPE_TIMEOUT"), default=8.0)),
        checkout_origin=(env_mapping.get("CHECKOUT_ORIGIN") or "http://localhost:8080").rstrip("/"),
        appointment_deposit_cents=max(1, _to_int(env_mapping.get("APPOINTMENT_DEPOSIT_CENTS"), default=2500)),
        rental_listing_monthly_cents=max(
            1, _to_int(env_mapping.get("RENTAL_LISTING_MONTHLY_CENTS"), default=2500)
        ),
        currency=(env_mapping.get("CURRENCY") or "usd").strip().lower(),
    )


def load_notification_config(env: Optional[Mapping[str, str]] = None) -> NotificationConfig:
    """Load :class:`NotificationConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    return NotificationConfig(
        team_email=env_mapping.get("TEAM_EMAIL") or None,
        whatsapp_access_token=env_mapping.get("WHATSAPP_ACCESS_TOKEN") or None,
        whatsapp_phone_number_id=env_mapping.get("WHATSAPP_PHONE_NUMBER_ID") or None,
        admin_whatsapp_number=env_mapping.get("ADMIN_WHATSAPP_NUMBER") or None,
        whatsapp_api_version=env_mapping.get("WHATSAPP_API_VERSION", "v18.0"),
        timeout=max(1.0, _to_float(env_mapping.get("NOTIFICATION_TIMEOUT"), default=10.0)),
    )


__all__ = ["NotificationConfig", "PaymentConfig", "load_notification_config", "load_payment_config"]
