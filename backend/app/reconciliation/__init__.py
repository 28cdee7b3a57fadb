"""Payment-event reconciliation: verify, resolve, transition and notify."""

from .checkout import CheckoutService
from .codec import decode_metadata_chunks, encode_metadata_chunks
from .errors import DependencyError, MalformedEventError, ReconciliationError, SignatureError
from .models import (
    Appointment,
    CheckoutLink,
    CheckoutSession,
    DomainRecord,
    HandlerResult,
    NotificationRequest,
    PaymentEvent,
    PaymentEventType,
    PaymentStatus,
    RecordRef,
    RecordStatus,
    RecordType,
    RentalListing,
    SessionCompletedEvent,
    SessionExpiredEvent,
    TransitionOutcome,
    TransitionResult,
    UnrecognizedEvent,
    WebhookErrorEntry,
)
from .notifications import NotificationDispatcher, build_notification_request
from .protocols import NotificationChannel, PaymentProvider, RecordRepository
from .resolver import RecordResolver
from .service import ReconciliationService
from .signature import SignatureVerifier, parse_event
from .transitions import StateTransitionApplier

__all__ = [
    "Appointment",
    "CheckoutLink",
    "CheckoutService",
    "CheckoutSession",
    "DependencyError",
    "DomainRecord",
    "HandlerResult",
    "MalformedEventError",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationRequest",
    "PaymentEvent",
    "PaymentEventType",
    "PaymentProvider",
    "PaymentStatus",
    "ReconciliationError",
    "ReconciliationService",
    "RecordRef",
    "RecordRepository",
    "RecordResolver",
    "RecordStatus",
    "RecordType",
    "RentalListing",
    "SessionCompletedEvent",
    "SessionExpiredEvent",
    "SignatureError",
    "SignatureVerifier",
    "StateTransitionApplier",
    "TransitionOutcome",
    "TransitionResult",
    "UnrecognizedEvent",
    "WebhookErrorEntry",
    "build_notification_request",
    "decode_metadata_chunks",
    "encode_metadata_chunks",
    "parse_event",
]
