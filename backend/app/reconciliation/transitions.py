"""Idempotent payment state transitions."""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Optional

from .models import PaymentStatus, RecordRef, TransitionOutcome, TransitionResult
from .protocols import RecordRepository

logger = logging.getLogger(__name__)

_dataclass_kwargs = {"slots": True} if sys.version_info >= (3, 10) else {}


@dataclass(**_dataclass_kwargs)
class StateTransitionApplier:
    """Applies paid/expired outcomes to a resolved record.

    ``paid`` is terminal: a repeated paid outcome writes nothing, so later
    admin changes to ``status`` survive redelivery, and an ``expired``
    outcome never overwrites it.
    """

    repository: RecordRepository

    def apply_paid(
        self,
        ref: RecordRef,
        session_id: str,
        *,
        payment_reference: Optional[str] = None,
    ) -> TransitionResult:
        previous = self.repository.get(ref)
        if previous is None:
            logger.warning("Paid session %s resolved to %s but no such record exists", session_id, ref)
            return TransitionResult(ref=ref, outcome=TransitionOutcome.NO_ROWS)

        if previous.is_paid:
            logger.info("Record %s already paid; session %s redelivered", ref, session_id)
            return TransitionResult(ref=ref, outcome=TransitionOutcome.ALREADY_PAID, record=previous)

        # The write only matches unpaid rows, so a concurrent delivery cannot rewrite a paid record.
        updated = self.repository.mark_paid(ref, session_id=session_id, payment_reference=payment_reference)
        if updated is None:
            refreshed = self.repository.get(ref)
            if refreshed is not None and refreshed.is_paid:
                logger.info("Record %s was paid by a concurrent delivery of session %s", ref, session_id)
                return TransitionResult(ref=ref, outcome=TransitionOutcome.ALREADY_PAID, record=refreshed)
            logger.warning("Record %s disappeared before it could be marked paid", ref)
            return TransitionResult(ref=ref, outcome=TransitionOutcome.NO_ROWS)

        logger.info("Record %s marked paid by session %s", ref, session_id)
        return TransitionResult(ref=ref, outcome=TransitionOutcome.APPLIED, record=updated)

    def apply_expired(self, ref: RecordRef) -> TransitionResult:
        current = self.repository.get(ref)
        if current is None:
            logger.warning("Expired session resolved to %s but no such record exists", ref)
            return TransitionResult(ref=ref, outcome=TransitionOutcome.NO_ROWS)

        if current.is_paid:
            logger.info("Ignoring expiry for %s: record is already paid", ref)
            return TransitionResult(ref=ref, outcome=TransitionOutcome.SKIPPED_PAID, record=current)

        # The write re-checks payment_status so a concurrent paid update wins.
        updated = self.repository.mark_expired(ref)
        if updated is None:
            refreshed = self.repository.get(ref)
            if refreshed is not None and refreshed.payment_status == PaymentStatus.PAID:
                logger.info("Record %s was paid concurrently; expiry skipped", ref)
                return TransitionResult(ref=ref, outcome=TransitionOutcome.SKIPPED_PAID, record=refreshed)
            logger.warning("Record %s disappeared before it could be marked expired", ref)
            return TransitionResult(ref=ref, outcome=TransitionOutcome.NO_ROWS)

        logger.info("Record %s marked expired", ref)
        return TransitionResult(ref=ref, outcome=TransitionOutcome.APPLIED, record=updated)


__all__ = ["StateTransitionApplier"]
