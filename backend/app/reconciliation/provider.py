"""Stripe-backed implementation of the payment provider interface."""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

import stripe

from .errors import DependencyError
from .models import CheckoutSession

logger = logging.getLogger(__name__)


class StripePaymentProvider:
    """Checkout session access through an explicitly constructed Stripe client."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout: float = 10.0,
        max_network_retries: int = 0,
        client: Optional[stripe.StripeClient] = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise ValueError("Stripe secret key must be configured")
            client = stripe.StripeClient(
                api_key,
                max_network_retries=max_network_retries,
                http_client=stripe.RequestsClient(timeout=timeout),
            )
        self._client = client

    def retrieve_session(self, session_id: str) -> Optional[CheckoutSession]:
        try:
            session = self._client.checkout.sessions.retrieve(session_id)
        except stripe.InvalidRequestError as exc:
            if exc.http_status == 404 or exc.code == "resource_missing":
                logger.info("Checkout session %s not found at provider", session_id)
                return None
            raise DependencyError(f"session lookup rejected: {exc.user_message or exc}") from exc
        except stripe.StripeError as exc:
            raise DependencyError(f"session lookup failed: {exc.user_message or exc}") from exc
        return CheckoutSession.from_provider(session)

    def create_checkout_session(self, params: Mapping[str, object]) -> Dict[str, object]:
        try:
            session = self._client.checkout.sessions.create(params=dict(params))
        except stripe.StripeError as exc:
            raise DependencyError(f"checkout session creation failed: {exc.user_message or exc}") from exc
        return {"id": session["id"], "url": session.get("url"), "expires_at": session.get("expires_at")}


__all__ = ["StripePaymentProvider"]
