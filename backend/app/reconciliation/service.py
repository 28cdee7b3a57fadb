"""Event routing for verified payment-provider deliveries."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

from .models import (
    CheckoutSession,
    HandlerResult,
    PaymentEvent,
    SessionCompletedEvent,
    SessionExpiredEvent,
    TransitionResult,
    UnrecognizedEvent,
    WebhookErrorEntry,
)
from .notifications import NotificationDispatcher
from .protocols import RecordRepository
from .resolver import RecordResolver
from .transitions import StateTransitionApplier

logger = logging.getLogger("reconciliation")


@dataclass
class ReconciliationService:
    """Routes verified events to resolution, transition and notification.

    Resolution and the state write are blocking calls and run in a worker
    thread bounded by ``handler_timeout``; an expired deadline is journaled
    and re-raised so the provider redelivers. Notifications run afterwards
    on the event loop under their own ``notification_timeout`` and never
    fail a delivery whose state write succeeded.
    """

    resolver: RecordResolver
    applier: StateTransitionApplier
    dispatcher: NotificationDispatcher
    repository: RecordRepository
    handler_timeout: float = 15.0
    notification_timeout: float = 10.0

    async def route(self, event: PaymentEvent) -> HandlerResult:
        if isinstance(event, UnrecognizedEvent):
            logger.info("Unhandled event type %s (%s); acknowledging", event.raw_type, event.event_id)
            return HandlerResult(event_id=event.event_id, event_type=event.event_type)

        logger.info("Processing %s %s for session %s", event.event_type, event.event_id, event.session.session_id)
        try:
            transition = await asyncio.wait_for(
                asyncio.to_thread(self._reconcile, event),
                timeout=self.handler_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Timed out handling %s %s after %.1fs", event.event_type, event.event_id, self.handler_timeout)
            await self.journal_failure(event, exc)
            raise
        except Exception as exc:
            await self.journal_failure(event, exc)
            raise

        if transition is None:
            return HandlerResult(event_id=event.event_id, event_type=event.event_type)

        result = HandlerResult(
            event_id=event.event_id,
            event_type=event.event_type,
            handled=True,
            record=transition.ref,
            outcome=transition.outcome,
        )
        if not (isinstance(event, SessionCompletedEvent) and transition.changed and transition.record is not None):
            return result

        delivered = await self._notify(transition, event.session)
        return result.model_copy(update={"notified_channels": delivered})

    def _reconcile(self, event: PaymentEvent) -> Optional[TransitionResult]:
        session = event.session
        ref = self.resolver.resolve(session)
        if ref is None:
            logger.warning("Dropping %s %s: session %s is not linked to any record", event.event_type, event.event_id, session.session_id)
            return None

        if isinstance(event, SessionCompletedEvent):
            return self.applier.apply_paid(
                ref,
                session.session_id,
                payment_reference=session.payment_intent_id or session.subscription_id,
            )
        if isinstance(event, SessionExpiredEvent):
            return self.applier.apply_expired(ref)
        raise TypeError(f"unsupported event variant: {type(event).__name__}")

    async def _notify(self, transition: TransitionResult, session: CheckoutSession) -> List[str]:
        try:
            summary = await asyncio.wait_for(
                self.dispatcher.dispatch(transition.record, session=session),
                timeout=self.notification_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Notifications for %s did not finish within %.1fs; payment already recorded",
                transition.ref,
                self.notification_timeout,
            )
            return []
        except Exception:
            logger.exception("Notification dispatch failed for %s", transition.ref)
            return []
        return summary.delivered

    async def journal_failure(self, event: PaymentEvent, exc: BaseException) -> None:
        """Record a failed delivery in the webhook error journal; never raises."""

        entry = WebhookErrorEntry(
            event_id=event.event_id,
            event_type=event.event_type,
            error_message=str(exc) or type(exc).__name__,
            metadata=dict(event.session.metadata) if not isinstance(event, UnrecognizedEvent) else {},
        )
        try:
            await asyncio.to_thread(self.repository.record_webhook_error, entry)
        except Exception as journal_exc:
            logger.error("Failed to record webhook error for %s: %s", event.event_id, journal_exc)


__all__ = ["ReconciliationService"]
