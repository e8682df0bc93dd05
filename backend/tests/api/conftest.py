"""Fixtures for API route tests."""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock

from api import create_app
from api.dependencies import (
    get_credit_ledger,
    get_orchestrator,
    get_stuck_session_recovery,
    get_task_queue,
    get_webhook_processor,
)
from modules.billing.models import SubscriptionTier
from modules.billing.repository import InMemoryAccountRepository
from modules.credits.service import CreditLedger
from modules.generation.queue import InMemoryTaskQueue
from modules.generation.recovery import StuckSessionRecovery
from modules.generation.repository import InMemorySessionRepository
from modules.generation.service import FulfillmentOrchestrator
from modules.webhooks.repository import InMemoryWebhookEventRepository
from modules.webhooks.service import WebhookProcessor

from tests.conftest import TEST_STORE_ID, TEST_WEBHOOK_SECRET


@pytest.fixture
def ledger():
    return CreditLedger()


@pytest.fixture
def accounts():
    repo = InMemoryAccountRepository()
    repo.add_store(
        TEST_STORE_ID,
        tier=SubscriptionTier.STARTER,
        subscription_id="sub_123",
        subscription_status="active",
    )
    return repo


@pytest.fixture
def biller():
    mock = AsyncMock()
    mock.charge.return_value = "chg_123"
    return mock


@pytest.fixture
def sessions():
    return InMemorySessionRepository()


@pytest.fixture
def queue():
    return InMemoryTaskQueue()


@pytest.fixture
def webhook_events():
    return InMemoryWebhookEventRepository()


@pytest.fixture
def app(ledger, accounts, biller, sessions, queue, webhook_events):
    """An application wired to in-memory implementations."""
    application = create_app()
    orchestrator = FulfillmentOrchestrator(ledger, accounts, biller, sessions, queue)
    processor = WebhookProcessor(webhook_events, ledger, accounts, TEST_WEBHOOK_SECRET)
    recovery = StuckSessionRecovery(sessions, ledger, biller)

    application.dependency_overrides[get_credit_ledger] = lambda: ledger
    application.dependency_overrides[get_orchestrator] = lambda: orchestrator
    application.dependency_overrides[get_webhook_processor] = lambda: processor
    application.dependency_overrides[get_stuck_session_recovery] = lambda: recovery
    application.dependency_overrides[get_task_queue] = lambda: queue
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
