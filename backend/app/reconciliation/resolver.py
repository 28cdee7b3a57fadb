"""Locate the domain record a checkout session paid for."""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Optional, Tuple

from .models import CheckoutSession, RecordRef, RecordType
from .protocols import PaymentProvider, RecordRepository

logger = logging.getLogger(__name__)

CORRELATION_KEY = "correlation_id"
RECORD_TYPE_KEY = "record_type"

# Keys written by older checkout producers, checked after ``correlation_id``.
_LEGACY_CORRELATION_KEYS: Tuple[Tuple[str, RecordType], ...] = (
    ("appointment_id", RecordType.APPOINTMENT),
    ("listing_id", RecordType.RENTAL_LISTING),
)

_dataclass_kwargs = {"slots": True} if sys.version_info >= (3, 10) else {}


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def record_type_from_metadata(session: CheckoutSession) -> RecordType:
    """Record kind declared by the session; appointments when unspecified."""

    declared = _clean(session.metadata.get(RECORD_TYPE_KEY)) or _clean(session.metadata.get("type"))
    if declared:
        try:
            return RecordType(declared.lower())
        except ValueError:
            logger.warning("Unknown record_type %r on session %s", declared, session.session_id)
    return RecordType.APPOINTMENT


def correlation_from_session(session: CheckoutSession) -> Optional[RecordRef]:
    """Read the correlation identifier carried by the session itself.

    ``metadata.correlation_id`` wins over ``client_reference_id``.
    """

    record_id = _clean(session.metadata.get(CORRELATION_KEY))
    if record_id:
        return RecordRef(record_type=record_type_from_metadata(session), record_id=record_id)

    for key, record_type in _LEGACY_CORRELATION_KEYS:
        record_id = _clean(session.metadata.get(key))
        if record_id:
            return RecordRef(record_type=record_type, record_id=record_id)

    record_id = _clean(session.client_reference_id)
    if record_id:
        return RecordRef(record_type=record_type_from_metadata(session), record_id=record_id)

    return None


@dataclass(**_dataclass_kwargs)
class RecordResolver:
    """Resolves a session to a record using four fallbacks, first hit wins.

    1. ``metadata.correlation_id`` on the delivered session
    2. ``client_reference_id`` on the delivered session
    3. the same two fields on a fresh copy fetched from the provider
    4. a stored record whose ``correlation_session_id`` is the session id
    """

    repository: RecordRepository
    provider: PaymentProvider

    def resolve(self, session: CheckoutSession) -> Optional[RecordRef]:
        ref = correlation_from_session(session)
        if ref is not None:
            logger.info("Resolved session %s to %s from event payload", session.session_id, ref)
            return ref

        refreshed = self.provider.retrieve_session(session.session_id)
        if refreshed is not None:
            ref = correlation_from_session(refreshed)
            if ref is not None:
                logger.info("Resolved session %s to %s from provider copy", session.session_id, ref)
                return ref

        ref = self.repository.find_by_session(session.session_id)
        if ref is not None:
            logger.info("Resolved session %s to %s from stored session id", session.session_id, ref)
            return ref

        logger.warning(
            "No record found for checkout session %s",
            session.session_id,
            extra={"metadata_keys": sorted(session.metadata)},
        )
        return None


__all__ = [
    "CORRELATION_KEY",
    "RECORD_TYPE_KEY",
    "RecordResolver",
    "correlation_from_session",
    "record_type_from_metadata",
]
