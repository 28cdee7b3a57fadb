"""Checkout session creation for payable records."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from .codec import encode_metadata_chunks
from .config import PaymentConfig
from .models import CheckoutLink, RecordRef, RecordType
from .protocols import PaymentProvider, RecordRepository
from .resolver import CORRELATION_KEY, RECORD_TYPE_KEY

logger = logging.getLogger(__name__)


@dataclass
class CheckoutService:
    """Creates hosted checkout sessions bound to a domain record.

    Every session carries the record id in both ``metadata.correlation_id``
    and ``client_reference_id``, and the session id is stored on the record,
    so a later webhook can be matched back by any resolver fallback.
    """

    repository: RecordRepository
    provider: PaymentProvider
    config: PaymentConfig

    def create_appointment_checkout(self, appointment_id: str) -> CheckoutLink:
        ref = self._payable_ref(RecordType.APPOINTMENT, appointment_id)
        origin = self.config.checkout_origin
        params: Dict[str, Any] = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": self.config.currency,
                        "product_data": {
                            "name": "Appointment Booking Deposit",
                            "description": "OneStop Application Services - Appointment Deposit",
                        },
                        "unit_amount": self.config.appointment_deposit_cents,
                    },
                    "quantity": 1,
                }
            ],
            "success_url": f"{origin}/appointment-success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{origin}/appointment",
            "client_reference_id": ref.record_id,
            "metadata": self._correlation_metadata(ref),
        }
        return self._create(ref, params)

    def create_rental_checkout(self, listing_id: str, listing_data: Mapping[str, Any]) -> CheckoutLink:
        ref = self._payable_ref(RecordType.RENTAL_LISTING, listing_id)
        origin = self.config.checkout_origin
        title = str(listing_data.get("title") or "Rental listing")
        metadata = {**encode_metadata_chunks(listing_data), **self._correlation_metadata(ref)}
        user_id = listing_data.get("user_id")
        if user_id:
            metadata["user_id"] = str(user_id)

        params: Dict[str, Any] = {
            "mode": "subscription",
            "line_items": [
                {
                    "price_data": {
                        "currency": self.config.currency,
                        "product_data": {
                            "name": "Rental Listing Subscription",
                            "description": f"Monthly listing for: {title}",
                        },
                        "unit_amount": self.config.rental_listing_monthly_cents,
                        "recurring": {"interval": "month"},
                    },
                    "quantity": 1,
                }
            ],
            "success_url": f"{origin}/dashboard/listings?session_id={{CHECKOUT_SESSION_ID}}&success=true",
            "cancel_url": f"{origin}/dashboard/rentals/new",
            "client_reference_id": ref.record_id,
            "metadata": metadata,
        }
        contact_email = listing_data.get("contact_email")
        if contact_email:
            params["customer_email"] = str(contact_email)
        return self._create(ref, params)

    def _payable_ref(self, record_type: RecordType, record_id: str) -> RecordRef:
        ref = RecordRef(record_type=record_type, record_id=record_id)
        record = self.repository.get(ref)
        if record is None:
            raise LookupError(f"{record_type.value} {ref.record_id} not found")
        if record.is_paid:
            raise ValueError(f"{record_type.value} {ref.record_id} is already paid")
        return ref

    def _correlation_metadata(self, ref: RecordRef) -> Dict[str, str]:
        return {CORRELATION_KEY: ref.record_id, RECORD_TYPE_KEY: ref.record_type.value}

    def _create(self, ref: RecordRef, params: Mapping[str, Any]) -> CheckoutLink:
        session = self.provider.create_checkout_session(params)
        session_id = str(session["id"])
        if self.repository.attach_session(ref, session_id) is None:
            logger.warning("Checkout session %s created but %s vanished before linking", session_id, ref)
        logger.info("Created checkout session %s for %s", session_id, ref)
        return CheckoutLink(ref=ref, session_id=session_id, url=str(session.get("url") or ""))


__all__ = ["CheckoutService"]
