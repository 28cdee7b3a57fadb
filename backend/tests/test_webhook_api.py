from __future__ import annotations

import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.app.reconciliation import (
    DependencyError,
    PaymentStatus,
    RecordRef,
    RecordType,
    SignatureVerifier,
)
from backend.app.routes import webhooks
from backend.app.services.reconciliation import (
    get_reconciliation_service,
    get_signature_verifier,
)
from fakes import WEBHOOK_SECRET, RecordingChannel, make_appointment, session_event_body, sign_payload

URL = "/api/webhooks/stripe"
APT = RecordRef(record_type=RecordType.APPOINTMENT, record_id="apt_1")


@pytest.fixture
def app(service) -> FastAPI:
    application = FastAPI()
    application.include_router(webhooks.router)
    application.dependency_overrides[get_signature_verifier] = lambda: SignatureVerifier(WEBHOOK_SECRET)
    application.dependency_overrides[get_reconciliation_service] = lambda: service
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def _post(client: TestClient, body: str, header: str):
    return client.post(
        URL,
        content=body.encode("utf-8"),
        headers={"Stripe-Signature": header, "Content-Type": "application/json"},
    )


def test_completed_session_is_acknowledged(client, repository, channels):
    repository.add(make_appointment())
    body = session_event_body("checkout.session.completed", "cs_123", metadata={"correlation_id": "apt_1"})

    response = _post(client, body, sign_payload(body))

    assert response.status_code == 200
    assert response.json() == {"received": True, "event": "checkout.session.completed"}
    assert repository.records[APT].payment_status == PaymentStatus.PAID
    assert all(len(channel.sent) == 1 for channel in channels)


def test_tampered_body_is_rejected_without_side_effects(client, repository, channels):
    repository.add(make_appointment())
    body = session_event_body("checkout.session.completed", "cs_123", metadata={"correlation_id": "apt_1"})
    header = sign_payload(body)

    response = _post(client, body.replace("cs_123", "cs_999"), header)

    assert response.status_code == 400
    assert "error" in response.json()
    assert repository.records[APT].payment_status == PaymentStatus.UNPAID
    assert repository.paid_writes == []
    assert all(channel.sent == [] for channel in channels)


def test_missing_signature_header_is_rejected(client):
    body = session_event_body("checkout.session.completed", "cs_123")

    response = client.post(URL, content=body.encode("utf-8"))

    assert response.status_code == 400
    assert response.json() == {"error": "No Stripe signature provided"}


def test_signed_body_without_envelope_is_rejected(client):
    body = '{"hello": "world"}'

    response = _post(client, body, sign_payload(body))

    assert response.status_code == 400


def test_unknown_event_type_is_acknowledged(client, repository):
    body = '{"id": "evt_7", "type": "customer.created", "data": {"object": {"id": "cus_1"}}}'

    response = _post(client, body, sign_payload(body))

    assert response.status_code == 200
    assert response.json() == {"received": True, "event": "customer.created"}
    assert repository.paid_writes == []


def test_dependency_failure_returns_server_error(client, repository):
    repository.add(make_appointment())
    repository.fail_with = DependencyError("database unavailable: host db.internal:5432")
    body = session_event_body("checkout.session.completed", "cs_123", metadata={"correlation_id": "apt_1"})

    response = _post(client, body, sign_payload(body))

    assert response.status_code == 500
    assert response.json() == {"error": "Webhook processing failed"}
    assert "db.internal" not in response.text
    assert [entry.event_id for entry in repository.webhook_errors] == ["evt_1"]
    assert repository.webhook_errors[0].error_message == "database unavailable: host db.internal:5432"


def test_failing_notification_still_acknowledges(app, client, repository, service):
    service.dispatcher.channels = [RecordingChannel("client_email", error=RuntimeError("smtp down"))]
    repository.add(make_appointment())
    body = session_event_body("checkout.session.completed", "cs_123", metadata={"correlation_id": "apt_1"})

    response = _post(client, body, sign_payload(body))

    assert response.status_code == 200
    assert repository.records[APT].payment_status == PaymentStatus.PAID


def test_slow_notification_outlasting_handler_deadline_still_acknowledges(client, repository, service):
    service.handler_timeout = 0.05
    service.dispatcher.channels = [RecordingChannel("client_email", delay=0.2)]
    repository.add(make_appointment())
    body = session_event_body("checkout.session.completed", "cs_123", metadata={"correlation_id": "apt_1"})

    response = _post(client, body, sign_payload(body))

    assert response.status_code == 200
    assert repository.records[APT].payment_status == PaymentStatus.PAID
    assert len(service.dispatcher.channels[0].sent) == 1
    assert repository.webhook_errors == []


def test_hung_notification_is_abandoned_and_acknowledged(client, repository, service):
    service.notification_timeout = 0.05
    service.dispatcher.channels = [RecordingChannel("whatsapp", delay=5)]
    repository.add(make_appointment())
    body = session_event_body("checkout.session.completed", "cs_123", metadata={"correlation_id": "apt_1"})

    response = _post(client, body, sign_payload(body))

    assert response.status_code == 200
    assert repository.records[APT].payment_status == PaymentStatus.PAID
    assert repository.webhook_errors == []


def test_slow_state_write_times_out_with_server_error(client, repository, service):
    repository.add(make_appointment())
    lookup = repository.get

    def slow_get(ref):
        time.sleep(0.3)
        return lookup(ref)

    repository.get = slow_get
    service.handler_timeout = 0.05
    body = session_event_body("checkout.session.completed", "cs_123", metadata={"correlation_id": "apt_1"})

    response = _post(client, body, sign_payload(body))

    assert response.status_code == 500
    assert response.json() == {"error": "Webhook handling timed out"}
    assert [entry.error_message for entry in repository.webhook_errors] == ["TimeoutError"]
def test_preflight_is_answered(client):
    response = client.options(URL)

    assert response.status_code == 200
    assert response.text == "ok"
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_other_methods_are_not_allowed(client):
    assert client.get(URL).status_code == 405
    assert client.put(URL, content=b"{}").status_code == 405
