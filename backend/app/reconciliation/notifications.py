"""Best-effort notification fan-out after a payment transition."""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from ...mail import EmailProvider, render_email
from .codec import decode_metadata_chunks
from .errors import MalformedEventError
from .models import (
    Appointment,
    CheckoutSession,
    DomainRecord,
    NotificationRequest,
    RecordType,
    RentalListing,
)
from .protocols import NotificationChannel

logger = logging.getLogger(__name__)

_RECORD_LABELS = {
    RecordType.APPOINTMENT: "appointment",
    RecordType.RENTAL_LISTING: "rental listing",
}


def build_notification_request(
    record: DomainRecord, *, session: Optional[CheckoutSession] = None
) -> NotificationRequest:
    """Derive the channel payload from an updated record.

    Rental listings fall back to the listing snapshot carried in the
    session's chunked metadata for fields the stored row leaves empty.
    """

    snapshot: Mapping[str, Any] = {}
    if session is not None and record.record_type == RecordType.RENTAL_LISTING:
        try:
            snapshot = decode_metadata_chunks(session.metadata) or {}
        except MalformedEventError as exc:
            logger.warning("Ignoring unreadable listing snapshot on session %s: %s", session.session_id, exc)

    email = record.contact_email or _snapshot_text(snapshot, "contact_email")
    if email is None and session is not None:
        email = session.customer_email

    fields: Dict[str, Any] = {
        "record_type": record.record_type,
        "record_id": record.record_id,
        "payment_status": record.payment_status,
        "name": record.contact_name or _snapshot_text(snapshot, "contact_name") or "Customer",
        "email": email,
        "phone": record.contact_phone or _snapshot_text(snapshot, "contact_phone"),
    }
    if isinstance(record, Appointment):
        fields.update(
            services=list(record.services),
            appointment_date=record.appointment_date,
            appointment_time=record.appointment_time,
            description=record.description,
        )
    elif isinstance(record, RentalListing):
        price = record.price if record.price is not None else snapshot.get("price")
        fields.update(
            title=record.title or _snapshot_text(snapshot, "title"),
            address=record.address or _snapshot_text(snapshot, "address"),
            price=float(price) if price is not None else None,
        )
    return NotificationRequest(**fields)


def _snapshot_text(snapshot: Mapping[str, Any], key: str) -> Optional[str]:
    value = snapshot.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _email_context(request: NotificationRequest) -> Dict[str, Any]:
    return {
        "name": request.name,
        "email": request.email or "Not provided",
        "phone": request.phone or "Not provided",
        "record_id": request.record_id,
        "record_label": _RECORD_LABELS[request.record_type],
        "payment_status": request.payment_status.value,
        "services": ", ".join(request.services) or "Not specified",
        "appointment_date": request.appointment_date or "",
        "appointment_time": request.appointment_time or "",
        "title": request.title or "",
        "address": request.address or "",
        "summary": _summary_lines(request),
    }


def _summary_lines(request: NotificationRequest) -> str:
    if request.record_type == RecordType.RENTAL_LISTING:
        lines = [f"Listing: {request.title or 'Untitled'}", f"Address: {request.address or 'Not provided'}"]
        if request.price is not None:
            lines.append(f"Price: {request.price:.2f}")
        return "\n".join(lines)

    lines = [
        f"Date: {request.appointment_date or 'Not set'}",
        f"Time: {request.appointment_time or 'Not set'}",
        "Services:",
    ]
    lines.extend(f"- {service}" for service in request.services)
    if request.description:
        lines.append(f"Details: {request.description}")
    return "\n".join(lines)


class ClientConfirmationEmail:
    """Confirmation email to the paying customer."""

    name = "client_email"

    def __init__(self, provider: EmailProvider, *, reply_to: Optional[str] = None) -> None:
        self._provider = provider
        self._reply_to = reply_to

    async def send(self, request: NotificationRequest) -> None:
        if not request.email:
            logger.info("No customer email for %s:%s; skipping confirmation", request.record_type.value, request.record_id)
            return
        template = (
            "listing_confirmation"
            if request.record_type == RecordType.RENTAL_LISTING
            else "appointment_confirmation"
        )
        message = render_email(template, _email_context(request), to=request.email, reply_to=self._reply_to)
        await asyncio.to_thread(self._provider.send, message)


class TeamAlertEmail:
    """Internal email to the operations team."""

    name = "team_email"

    def __init__(self, provider: EmailProvider, *, team_email: str) -> None:
        self._provider = provider
        self._team_email = team_email

    async def send(self, request: NotificationRequest) -> None:
        message = render_email(
            "team_payment_alert", _email_context(request), to=self._team_email, reply_to=request.email
        )
        await asyncio.to_thread(self._provider.send, message)


class WhatsAppAlert:
    """WhatsApp Cloud API message to the admin number."""

    name = "whatsapp"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        access_token: str,
        phone_number_id: str,
        admin_number: str,
        api_version: str = "v18.0",
    ) -> None:
        self._client = client
        self._access_token = access_token
        self._url = f"https://graph.facebook.com/{api_version}/{phone_number_id}/messages"
        self._admin_number = re.sub(r"\D", "", admin_number)

    def build_message(self, request: NotificationRequest) -> str:
        heading = "New Appointment Booking" if request.record_type == RecordType.APPOINTMENT else "New Rental Listing"
        lines = [
            f"*{heading}* ({request.payment_status.value})",
            "",
            f"*Customer:* {request.name}",
            f"*Email:* {request.email or 'Not provided'}",
            f"*Phone:* {request.phone or 'Not provided'}",
            "",
            _summary_lines(request),
        ]
        return "\n".join(lines)

    async def send(self, request: NotificationRequest) -> None:
        response = await self._client.post(
            self._url,
            headers={"Authorization": f"Bearer {self._access_token}"},
            json={
                "messaging_product": "whatsapp",
                "recipient_type": "individual",
                "to": self._admin_number,
                "type": "text",
                "text": {"body": self.build_message(request)},
            },
        )
        response.raise_for_status()


@dataclass
class DispatchSummary:
    """Per-channel outcome of one dispatch."""

    delivered: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


@dataclass
class NotificationDispatcher:
    """Runs every channel concurrently; one failing channel never affects another."""

    channels: Sequence[NotificationChannel]

    async def dispatch(
        self, record: DomainRecord, *, session: Optional[CheckoutSession] = None
    ) -> DispatchSummary:
        request = build_notification_request(record, session=session)
        results = await asyncio.gather(
            *(channel.send(request) for channel in self.channels),
            return_exceptions=True,
        )

        summary = DispatchSummary()
        for channel, result in zip(self.channels, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Notification channel %s failed for %s:%s: %s",
                    channel.name,
                    request.record_type.value,
                    request.record_id,
                    result,
                    exc_info=result,
                )
                summary.failed[channel.name] = str(result) or type(result).__name__
            else:
                summary.delivered.append(channel.name)
        logger.info(
            "Notifications for %s:%s delivered=%s failed=%s",
            request.record_type.value,
            request.record_id,
            summary.delivered,
            sorted(summary.failed),
        )
        return summary


__all__ = [
    "ClientConfirmationEmail",
    "DispatchSummary",
    "NotificationDispatcher",
    "TeamAlertEmail",
    "WhatsAppAlert",
    "build_notification_request",
]
