from __future__ import annotations

from typing import List

import pytest

from backend.app.reconciliation import (
    NotificationDispatcher,
    ReconciliationService,
    RecordResolver,
    StateTransitionApplier,
)
from fakes import FakePaymentProvider, InMemoryRecordRepository, RecordingChannel


@pytest.fixture
def repository() -> InMemoryRecordRepository:
    return InMemoryRecordRepository()


@pytest.fixture
def provider() -> FakePaymentProvider:
    return FakePaymentProvider()


@pytest.fixture
def channels() -> List[RecordingChannel]:
    return [RecordingChannel("client_email"), RecordingChannel("team_email"), RecordingChannel("whatsapp")]


@pytest.fixture
def service(repository, provider, channels) -> ReconciliationService:
    return ReconciliationService(
        resolver=RecordResolver(repository=repository, provider=provider),
        applier=StateTransitionApplier(repository=repository),
        dispatcher=NotificationDispatcher(channels=channels),
        repository=repository,
    )
