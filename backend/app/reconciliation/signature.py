"""Webhook signature verification and event envelope parsing."""
from __future__ import annotations

import json
import logging
from typing import Optional

import stripe

from .errors import MalformedEventError, SignatureError
from .models import (
    CheckoutSession,
    PaymentEvent,
    PaymentEventType,
    SessionCompletedEvent,
    SessionExpiredEvent,
    UnrecognizedEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_SECONDS = 300


class SignatureVerifier:
    """Authenticates raw webhook deliveries against the endpoint signing secret."""

    def __init__(self, secret: str, *, tolerance: int = DEFAULT_TOLERANCE_SECONDS) -> None:
        if not secret:
            raise ValueError("webhook signing secret must be configured")
        self._secret = secret
        self._tolerance = tolerance

    def verify(self, raw_body: bytes, signature_header: Optional[str]) -> PaymentEvent:
        """Return the parsed event when ``raw_body`` carries a valid signature.

        ``raw_body`` must be the request body exactly as received. Every
        authentication problem raises :class:`SignatureError`; a body that
        verifies but does not hold an event envelope raises
        :class:`MalformedEventError`.
        """

        if not signature_header or not signature_header.strip():
            raise SignatureError("No Stripe signature provided")

        try:
            payload = raw_body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SignatureError("Webhook body is not valid UTF-8") from exc

        try:
            stripe.WebhookSignature.verify_header(
                payload,
                signature_header,
                self._secret,
                self._tolerance,
            )
        except stripe.SignatureVerificationError as exc:
            logger.warning("Webhook signature verification failed: %s", exc)
            raise SignatureError(f"Webhook signature verification failed: {exc}") from exc

        return parse_event(payload)


def parse_event(payload: str) -> PaymentEvent:
    """Turn a verified JSON envelope into one of the known event variants."""

    try:
        envelope = json.loads(payload)
    except ValueError as exc:
        raise MalformedEventError("Webhook body is not valid JSON") from exc

    if not isinstance(envelope, dict):
        raise MalformedEventError("Webhook body must be a JSON object")

    event_id = envelope.get("id")
    event_type = envelope.get("type")
    if not event_id or not isinstance(event_type, str) or not event_type:
        raise MalformedEventError("Webhook event is missing id or type")

    if event_type not in {member.value for member in PaymentEventType}:
        return UnrecognizedEvent(event_id=str(event_id), raw_type=event_type)

    data = envelope.get("data")
    session_payload = data.get("object") if isinstance(data, dict) else None
    if not isinstance(session_payload, dict):
        raise MalformedEventError(f"{event_type} event is missing data.object")

    try:
        session = CheckoutSession.from_provider(session_payload)
    except ValueError as exc:
        raise MalformedEventError(str(exc)) from exc

    if event_type == PaymentEventType.SESSION_COMPLETED.value:
        return SessionCompletedEvent(event_id=str(event_id), session=session)
    return SessionExpiredEvent(event_id=str(event_id), session=session)


__all__ = ["DEFAULT_TOLERANCE_SECONDS", "SignatureVerifier", "parse_event"]
