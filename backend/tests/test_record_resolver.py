from __future__ import annotations

import pytest

from backend.app.reconciliation import (
    CheckoutSession,
    DependencyError,
    RecordRef,
    RecordResolver,
    RecordType,
)
from backend.app.reconciliation.resolver import correlation_from_session, record_type_from_metadata
from fakes import make_appointment, make_listing


@pytest.fixture
def resolver(repository, provider) -> RecordResolver:
    return RecordResolver(repository=repository, provider=provider)


def test_metadata_correlation_wins_without_provider_call(resolver, provider):
    session = CheckoutSession(
        session_id="cs_1",
        metadata={"correlation_id": "apt_1"},
        client_reference_id="apt_other",
    )

    ref = resolver.resolve(session)

    assert ref == RecordRef(record_type=RecordType.APPOINTMENT, record_id="apt_1")
    assert provider.retrieved == []


def test_client_reference_id_is_second_tier(resolver, provider):
    session = CheckoutSession(session_id="cs_2", client_reference_id="apt_7")

    assert resolver.resolve(session) == RecordRef(record_type=RecordType.APPOINTMENT, record_id="apt_7")
    assert provider.retrieved == []


def test_identifiers_are_trimmed(resolver):
    session = CheckoutSession(session_id="cs_3", metadata={"correlation_id": "  apt_1 \n"})

    assert resolver.resolve(session).record_id == "apt_1"


def test_blank_correlation_falls_through_to_client_reference(resolver):
    session = CheckoutSession(
        session_id="cs_4",
        metadata={"correlation_id": "   "},
        client_reference_id=" lst_4 ",
    )

    assert resolver.resolve(session).record_id == "lst_4"


def test_record_type_comes_from_metadata(resolver):
    session = CheckoutSession(
        session_id="cs_5",
        metadata={"correlation_id": "lst_9", "record_type": "rental_listing"},
    )

    assert resolver.resolve(session) == RecordRef(record_type=RecordType.RENTAL_LISTING, record_id="lst_9")


def test_legacy_keys_are_understood():
    appointment = CheckoutSession(session_id="cs_6", metadata={"appointment_id": "apt_6"})
    listing = CheckoutSession(session_id="cs_7", metadata={"listing_id": "lst_7", "type": "rental_listing"})

    assert correlation_from_session(appointment) == RecordRef(record_type=RecordType.APPOINTMENT, record_id="apt_6")
    assert correlation_from_session(listing) == RecordRef(record_type=RecordType.RENTAL_LISTING, record_id="lst_7")


def test_unknown_record_type_defaults_to_appointment():
    session = CheckoutSession(session_id="cs_8", metadata={"record_type": "spaceship"})

    assert record_type_from_metadata(session) == RecordType.APPOINTMENT


def test_slim_payload_is_refetched_from_provider(resolver, provider):
    provider.sessions["cs_9"] = CheckoutSession(
        session_id="cs_9",
        metadata={"correlation_id": "lst_9", "record_type": "rental_listing"},
    )

    ref = resolver.resolve(CheckoutSession(session_id="cs_9"))

    assert ref == RecordRef(record_type=RecordType.RENTAL_LISTING, record_id="lst_9")
    assert provider.retrieved == ["cs_9"]


def test_stored_session_id_is_last_resort(resolver, repository, provider):
    repository.add(make_listing("lst_10", correlation_session_id="cs_10"))
    provider.sessions["cs_10"] = CheckoutSession(session_id="cs_10")

    ref = resolver.resolve(CheckoutSession(session_id="cs_10"))

    assert ref == RecordRef(record_type=RecordType.RENTAL_LISTING, record_id="lst_10")
    assert provider.retrieved == ["cs_10"]


def test_unresolvable_session_returns_none(resolver, repository, provider):
    repository.add(make_appointment("apt_1", correlation_session_id="cs_other"))

    assert resolver.resolve(CheckoutSession(session_id="cs_missing")) is None
    assert provider.retrieved == ["cs_missing"]


def test_provider_outage_propagates(resolver, provider):
    provider.fail_with = DependencyError("stripe unavailable")

    with pytest.raises(DependencyError):
        resolver.resolve(CheckoutSession(session_id="cs_11"))
