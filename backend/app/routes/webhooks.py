"""Inbound payment-provider webhook endpoint."""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from ..reconciliation import (
    MalformedEventError,
    ReconciliationService,
    SignatureError,
    SignatureVerifier,
)
from ..schemas.payments import ErrorResponse, WebhookAck
from ..services.reconciliation import get_reconciliation_service, get_signature_verifier

logger = logging.getLogger("reconciliation")

SIGNATURE_HEADER = "Stripe-Signature"

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type, stripe-signature",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=_CORS_HEADERS,
    )


@router.options("/stripe")
def stripe_webhook_preflight() -> Response:
    return Response(content="ok", media_type="text/plain", headers=_CORS_HEADERS)


@router.post(
    "/stripe",
    response_model=WebhookAck,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def receive_stripe_webhook(
    request: Request,
    verifier: SignatureVerifier = Depends(get_signature_verifier),
    service: ReconciliationService = Depends(get_reconciliation_service),
) -> JSONResponse:
    # The signature covers the exact bytes sent, so the body is never parsed first.
    raw_body = await request.body()
    try:
        event = verifier.verify(raw_body, request.headers.get(SIGNATURE_HEADER))
    except (SignatureError, MalformedEventError) as exc:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    try:
        result = await service.route(event)
    except asyncio.TimeoutError:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Webhook handling timed out")
    except Exception:
        # Details stay in the log and the error journal.
        logger.exception("Webhook error while handling %s %s", event.event_type, event.event_id)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Webhook processing failed")

    logger.info(
        "Webhook %s %s handled=%s outcome=%s",
        result.event_type,
        result.event_id,
        result.handled,
        result.outcome.value if result.outcome else None,
    )
    return JSONResponse(
        content=WebhookAck(event=result.event_type).model_dump(),
        headers=_CORS_HEADERS,
    )
