"""Tests for webhook signature verification and envelope parsing."""
from __future__ import annotations

import json
import time

import pytest

from backend.app.reconciliation import (
    MalformedEventError,
    SessionCompletedEvent,
    SessionExpiredEvent,
    SignatureError,
    SignatureVerifier,
    UnrecognizedEvent,
    parse_event,
)
from fakes import WEBHOOK_SECRET, session_event_body, sign_payload


@pytest.fixture
def verifier() -> SignatureVerifier:
    return SignatureVerifier(WEBHOOK_SECRET)


def test_valid_signature_yields_completed_event(verifier):
    body = session_event_body(
        "checkout.session.completed",
        "cs_123",
        metadata={"correlation_id": "apt_1"},
    )

    event = verifier.verify(body.encode("utf-8"), sign_payload(body))

    assert isinstance(event, SessionCompletedEvent)
    assert event.event_id == "evt_1"
    assert event.session.session_id == "cs_123"
    assert event.session.metadata == {"correlation_id": "apt_1"}
    assert event.session.payment_intent_id == "pi_1"


def test_tampered_body_is_rejected(verifier):
    body = session_event_body("checkout.session.completed", "cs_123", metadata={"correlation_id": "apt_1"})
    header = sign_payload(body)
    tampered = body.replace("apt_1", "apt_2")

    with pytest.raises(SignatureError):
        verifier.verify(tampered.encode("utf-8"), header)


def test_reserialized_body_is_rejected(verifier):
    body = session_event_body("checkout.session.completed", "cs_123")
    header = sign_payload(body)
    reserialized = json.dumps(json.loads(body), indent=2)

    with pytest.raises(SignatureError):
        verifier.verify(reserialized.encode("utf-8"), header)


@pytest.mark.parametrize("header", [None, "", "   ", "not-a-signature", "t=abc,v1=deadbeef"])
def test_missing_or_unparsable_header_is_rejected(verifier, header):
    body = session_event_body("checkout.session.completed", "cs_123")

    with pytest.raises(SignatureError):
        verifier.verify(body.encode("utf-8"), header)


def test_wrong_secret_is_rejected(verifier):
    body = session_event_body("checkout.session.completed", "cs_123")

    with pytest.raises(SignatureError):
        verifier.verify(body.encode("utf-8"), sign_payload(body, secret="whsec_other"))


def test_stale_timestamp_is_rejected():
    verifier = SignatureVerifier(WEBHOOK_SECRET, tolerance=60)
    body = session_event_body("checkout.session.completed", "cs_123")
    header = sign_payload(body, timestamp=int(time.time()) - 3600)

    with pytest.raises(SignatureError):
        verifier.verify(body.encode("utf-8"), header)


def test_non_utf8_body_is_rejected(verifier):
    with pytest.raises(SignatureError):
        verifier.verify(b"\xff\xfe\x00", "t=1,v1=00")


def test_verified_non_json_body_is_malformed(verifier):
    body = "definitely not json"

    with pytest.raises(MalformedEventError):
        verifier.verify(body.encode("utf-8"), sign_payload(body))


def test_blank_secret_is_refused():
    with pytest.raises(ValueError):
        SignatureVerifier("")


def test_unknown_event_type_is_unrecognized_variant():
    event = parse_event(json.dumps({"id": "evt_9", "type": "payment_intent.succeeded", "data": {"object": {}}}))

    assert isinstance(event, UnrecognizedEvent)
    assert event.raw_type == "payment_intent.succeeded"
    assert event.event_type == "payment_intent.succeeded"


def test_expired_event_parses_customer_details_email():
    payload = json.dumps(
        {
            "id": "evt_2",
            "type": "checkout.session.expired",
            "data": {
                "object": {
                    "id": "cs_9",
                    "metadata": None,
                    "customer_details": {"email": "buyer@example.com"},
                }
            },
        }
    )

    event = parse_event(payload)

    assert isinstance(event, SessionExpiredEvent)
    assert event.session.metadata == {}
    assert event.session.customer_email == "buyer@example.com"


@pytest.mark.parametrize(
    "envelope",
    [
        [],
        {"type": "checkout.session.completed"},
        {"id": "evt_3"},
        {"id": "evt_4", "type": "checkout.session.completed"},
        {"id": "evt_5", "type": "checkout.session.completed", "data": {"object": {"metadata": {}}}},
    ],
)
def test_envelopes_missing_required_fields_are_malformed(envelope):
    with pytest.raises(MalformedEventError):
        parse_event(json.dumps(envelope))
