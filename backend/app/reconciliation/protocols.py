"""Collaborator interfaces required by the reconciliation pipeline."""
from __future__ import annotations

from typing import Dict, Mapping, Optional, Protocol

from .models import CheckoutSession, DomainRecord, NotificationRequest, RecordRef, WebhookErrorEntry


class PaymentProvider(Protocol):
    """Read and create checkout sessions at the payment provider."""

    def retrieve_session(self, session_id: str) -> Optional[CheckoutSession]:
        """Fetch the full session, or ``None`` when the provider does not know it.

        Transport and API failures raise :class:`DependencyError`.
        """

    def create_checkout_session(self, params: Mapping[str, object]) -> Dict[str, object]:
        """Create a hosted checkout session and return its id and url."""


class RecordRepository(Protocol):
    """Persistence operations on appointments and rental listings."""

    def get(self, ref: RecordRef) -> Optional[DomainRecord]:
        ...

    def find_by_session(self, session_id: str) -> Optional[RecordRef]:
        ...

    def mark_paid(
        self,
        ref: RecordRef,
        *,
        session_id: str,
        payment_reference: Optional[str] = None,
    ) -> Optional[DomainRecord]:
        """Mark an unpaid record paid; ``None`` when no unpaid row matched."""

    def mark_expired(self, ref: RecordRef) -> Optional[DomainRecord]:
        ...

    def attach_session(self, ref: RecordRef, session_id: str) -> Optional[DomainRecord]:
        ...

    def record_webhook_error(self, entry: WebhookErrorEntry) -> None:
        ...


class NotificationChannel(Protocol):
    """One independent notification route (email, messaging, ...)."""

    name: str

    async def send(self, request: NotificationRequest) -> None:
        ...


__all__ = ["NotificationChannel", "PaymentProvider", "RecordRepository"]
