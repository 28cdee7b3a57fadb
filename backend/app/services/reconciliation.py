"""Application wiring for the reconciliation pipeline."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import List

import httpx

from ...database import create_connection_factory, load_database_config
from ...mail import create_email_provider, load_email_config
from ..reconciliation import (
    CheckoutService,
    NotificationChannel,
    NotificationDispatcher,
    ReconciliationService,
    RecordResolver,
    SignatureVerifier,
    StateTransitionApplier,
)
from ..reconciliation.config import (
    NotificationConfig,
    PaymentConfig,
    load_notification_config,
    load_payment_config,
)
from ..reconciliation.notifications import ClientConfirmationEmail, TeamAlertEmail, WhatsAppAlert
from ..reconciliation.provider import StripePaymentProvider
from ..reconciliation.repository import PostgresRecordRepository

logger = logging.getLogger("reconciliation")


@lru_cache(maxsize=1)
def get_payment_config() -> PaymentConfig:
    return load_payment_config()


@lru_cache(maxsize=1)
def get_record_repository() -> PostgresRecordRepository:
    return PostgresRecordRepository(create_connection_factory(load_database_config()))


@lru_cache(maxsize=1)
def get_payment_provider() -> StripePaymentProvider:
    config = get_payment_config()
    return StripePaymentProvider(api_key=config.stripe_secret_key, timeout=config.provider_timeout)


@lru_cache(maxsize=1)
def get_signature_verifier() -> SignatureVerifier:
    config = get_payment_config()
    return SignatureVerifier(config.webhook_signing_secret, tolerance=config.signature_tolerance)


def build_notification_channels(config: NotificationConfig, client: httpx.AsyncClient) -> List[NotificationChannel]:
    email_config = load_email_config()
    email_provider = create_email_provider(email_config)
    channels: List[NotificationChannel] = [ClientConfirmationEmail(email_provider, reply_to=email_config.reply_to)]
    if config.team_email:
        channels.append(TeamAlertEmail(email_provider, team_email=config.team_email))
    else:
        logger.info("TEAM_EMAIL not set; internal payment emails disabled")
    if config.whatsapp_enabled:
        channels.append(
            WhatsAppAlert(
                client,
                access_token=config.whatsapp_access_token or "",
                phone_number_id=config.whatsapp_phone_number_id or "",
                admin_number=config.admin_whatsapp_number or "",
                api_version=config.whatsapp_api_version,
            )
        )
    else:
        logger.info("WhatsApp credentials not configured; messaging alerts disabled")
    return channels


@lru_cache(maxsize=1)
def get_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=load_notification_config().timeout)


@lru_cache(maxsize=1)
def get_reconciliation_service() -> ReconciliationService:
    repository = get_record_repository()
    provider = get_payment_provider()
    notification_config = load_notification_config()
    channels = build_notification_channels(notification_config, get_http_client())
    return ReconciliationService(
        resolver=RecordResolver(repository=repository, provider=provider),
        applier=StateTransitionApplier(repository=repository),
        dispatcher=NotificationDispatcher(channels=channels),
        repository=repository,
        handler_timeout=get_payment_config().handler_timeout,
        notification_timeout=notification_config.timeout,
    )


@lru_cache(maxsize=1)
def get_checkout_service() -> CheckoutService:
    return CheckoutService(
        repository=get_record_repository(),
        provider=get_payment_provider(),
        config=get_payment_config(),
    )


async def close_http_client() -> None:
    if get_http_client.cache_info().currsize:
        await get_http_client().aclose()
        get_http_client.cache_clear()


__all__ = [
    "build_notification_channels",
    "close_http_client",
    "get_checkout_service",
    "get_payment_config",
    "get_reconciliation_service",
    "get_signature_verifier",
]
