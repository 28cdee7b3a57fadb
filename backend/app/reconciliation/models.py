"""Domain models for payment-event reconciliation."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RecordType(str, Enum):
    """Kinds of domain records a checkout session can pay for."""

    APPOINTMENT = "appointment"
    RENTAL_LISTING = "rental_listing"


class PaymentStatus(str, Enum):
    """Payment state of a domain record. ``paid`` is terminal."""

    UNPAID = "unpaid"
    PAID = "paid"
    EXPIRED = "expired"


class RecordStatus(str, Enum):
    """Business status of a domain record."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentEventType(str, Enum):
    """Provider event types the reconciliation pipeline acts on."""

    SESSION_COMPLETED = "checkout.session.completed"
    SESSION_EXPIRED = "checkout.session.expired"


class TransitionOutcome(str, Enum):
    """Result of applying a payment transition to a record."""

    APPLIED = "applied"
    ALREADY_PAID = "already_paid"
    SKIPPED_PAID = "skipped_paid"
    NO_ROWS = "no_rows"


class CheckoutSession(BaseModel):
    """Provider checkout session as seen by the reconciliation pipeline."""

    session_id: str
    metadata: Dict[str, str] = Field(default_factory=dict)
    client_reference_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    subscription_id: Optional[str] = None
    customer_email: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def from_provider(cls, payload: Mapping[str, object]) -> "CheckoutSession":
        """Build a session from a provider ``checkout.session`` object."""

        session_id = payload.get("id")
        if not session_id:
            raise ValueError("checkout session payload is missing an id")

        customer_email = payload.get("customer_email")
        details = payload.get("customer_details")
        if not customer_email and isinstance(details, Mapping):
            customer_email = details.get("email")

        return cls(
            session_id=str(session_id),
            metadata=_safe_metadata(payload.get("metadata")),
            client_reference_id=_optional_str(payload.get("client_reference_id")),
            payment_intent_id=_optional_str(payload.get("payment_intent")),
            subscription_id=_optional_str(payload.get("subscription")),
            customer_email=_optional_str(customer_email),
        )


class SessionCompletedEvent(BaseModel):
    """A verified ``checkout.session.completed`` delivery."""

    kind: Literal["session_completed"] = "session_completed"
    event_id: str
    session: CheckoutSession

    model_config = ConfigDict(frozen=True)

    @property
    def event_type(self) -> str:
        return PaymentEventType.SESSION_COMPLETED.value


class SessionExpiredEvent(BaseModel):
    """A verified ``checkout.session.expired`` delivery."""

    kind: Literal["session_expired"] = "session_expired"
    event_id: str
    session: CheckoutSession

    model_config = ConfigDict(frozen=True)

    @property
    def event_type(self) -> str:
        return PaymentEventType.SESSION_EXPIRED.value


class UnrecognizedEvent(BaseModel):
    """A verified delivery of a type this service does not act on."""

    kind: Literal["unrecognized"] = "unrecognized"
    event_id: str
    raw_type: str

    model_config = ConfigDict(frozen=True)

    @property
    def event_type(self) -> str:
        return self.raw_type


PaymentEvent = Union[SessionCompletedEvent, SessionExpiredEvent, UnrecognizedEvent]


class RecordRef(BaseModel):
    """Identity of a domain record: its kind and primary key."""

    record_type: RecordType
    record_id: str

    model_config = ConfigDict(frozen=True)

    @field_validator("record_id")
    @classmethod
    def _strip_record_id(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("record_id must not be blank")
        return stripped

    def __str__(self) -> str:
        return f"{self.record_type.value}:{self.record_id}"


class DomainRecord(BaseModel):
    """Fields shared by every payable record."""

    record_type: RecordType
    record_id: str
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    status: RecordStatus = RecordStatus.PENDING
    correlation_session_id: Optional[str] = None
    payment_reference: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def ref(self) -> RecordRef:
        return RecordRef(record_type=self.record_type, record_id=self.record_id)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID


class Appointment(DomainRecord):
    """Consultation appointment booked through the site."""

    record_type: Literal[RecordType.APPOINTMENT] = RecordType.APPOINTMENT
    services: List[str] = Field(default_factory=list)
    appointment_date: Optional[str] = None
    appointment_time: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None


class RentalListing(DomainRecord):
    """Rental listing submitted by a user, published after payment and approval."""

    record_type: Literal[RecordType.RENTAL_LISTING] = RecordType.RENTAL_LISTING
    user_id: Optional[str] = None
    title: Optional[str] = None
    address: Optional[str] = None
    property_type: Optional[str] = None
    price: Optional[float] = None


class TransitionResult(BaseModel):
    """Outcome of a state transition attempt."""

    ref: RecordRef
    outcome: TransitionOutcome
    record: Optional[DomainRecord] = None

    model_config = ConfigDict(frozen=True)

    @property
    def changed(self) -> bool:
        return self.outcome == TransitionOutcome.APPLIED


class HandlerResult(BaseModel):
    """What the pipeline did with a single verified event."""

    event_id: str
    event_type: str
    handled: bool = False
    record: Optional[RecordRef] = None
    outcome: Optional[TransitionOutcome] = None
    notified_channels: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class NotificationRequest(BaseModel):
    """Payload handed to each notification channel after a transition."""

    record_type: RecordType
    record_id: str
    payment_status: PaymentStatus
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    services: List[str] = Field(default_factory=list)
    appointment_date: Optional[str] = None
    appointment_time: Optional[str] = None
    description: Optional[str] = None
    title: Optional[str] = None
    address: Optional[str] = None
    price: Optional[float] = None

    model_config = ConfigDict(frozen=True)


class WebhookErrorEntry(BaseModel):
    """Failed delivery recorded for manual review."""

    event_id: str
    event_type: str
    error_message: str
    metadata: Dict[str, str] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)


class CheckoutLink(BaseModel):
    """Hosted checkout page created for a domain record."""

    ref: RecordRef
    session_id: str
    url: str

    model_config = ConfigDict(frozen=True)


def _optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _safe_metadata(value: object) -> Dict[str, str]:
    if isinstance(value, Mapping):
        return {str(k): str(v) for k, v in value.items() if v is not None}
    return {}


__all__ = [
    "Appointment",
    "CheckoutLink",
    "CheckoutSession",
    "DomainRecord",
    "HandlerResult",
    "NotificationRequest",
    "PaymentEvent",
    "PaymentEventType",
    "PaymentStatus",
    "RecordRef",
    "RecordStatus",
    "RecordType",
    "RentalListing",
    "SessionCompletedEvent",
    "SessionExpiredEvent",
    "TransitionOutcome",
    "TransitionResult",
    "UnrecognizedEvent",
    "WebhookErrorEntry",
]
