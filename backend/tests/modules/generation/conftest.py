"""Fixtures for generation module tests."""

import pytest
from unittest.mock import AsyncMock

from modules.billing.models import BillingMode, SubscriptionTier
from modules.billing.repository import InMemoryAccountRepository
from modules.credits.service import CreditLedger
from modules.generation.queue import InMemoryTaskQueue
from modules.generation.repository import InMemorySessionRepository
from modules.generation.service import FulfillmentOrchestrator

from tests.conftest import TEST_STORE_ID


@pytest.fixture
def ledger():
    return CreditLedger()


@pytest.fixture
def accounts():
    """A store in absorb mode with an active starter subscription."""
    repo = InMemoryAccountRepository()
    repo.add_store(
        TEST_STORE_ID,
        billing_mode=BillingMode.ABSORB,
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
def orchestrator(ledger, accounts, biller, sessions, queue):
    return FulfillmentOrchestrator(
        ledger=ledger,
        profiles=accounts,
        biller=biller,
        sessions=sessions,
        queue=queue,
        queue_timeout_seconds=0.5,
    )

