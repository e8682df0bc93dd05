"""Tests for the Paddle webhook processor."""

import json

import pytest
from unittest.mock import AsyncMock

from modules.billing.exceptions import WebhookVerificationError
from modules.billing.models import BillingMode, SubscriptionTier
from modules.billing.repository import InMemoryAccountRepository
from modules.credits.models import TransactionType
from modules.credits.service import CreditLedger
from modules.webhooks.exceptions import (
    MalformedWebhookError,
    WebhookConfigurationError,
    WebhookProcessingError,
)
from modules.webhooks.models import EventStatus
from modules.webhooks.repository import InMemoryWebhookEventRepository
from modules.webhooks.service import WebhookProcessor

from tests.conftest import TEST_STORE_ID, TEST_WEBHOOK_SECRET, sign_paddle_body


def _transaction(event_id: str = "evt_1", **custom_data) -> bytes:
    return json.dumps({
        "event_id": event_id,
        "event_type": "transaction.completed",
        "data": {
            "id": "txn_1",
            "subscription_id": custom_data.pop("subscription_id", None),
            "customer_id": "ctm_1",
            "custom_data": custom_data,
        },
    }).encode()


@pytest.fixture
def events():
    return InMemoryWebhookEventRepository()


@pytest.fixture
def ledger():
    return CreditLedger()


@pytest.fixture
def accounts():
    repo = InMemoryAccountRepository()
    repo.add_store(TEST_STORE_ID, billing_mode=BillingMode.ABSORB)
    return repo


@pytest.fixture
def processor(events, ledger, accounts):
    return WebhookProcessor(events, ledger, accounts, TEST_WEBHOOK_SECRET)


async def _deliver(processor: WebhookProcessor, body: bytes):
    return await processor.handle(body, sign_paddle_body(body), "req_webhook")


class TestSignature:
    @pytest.mark.asyncio
    async def test_bad_signature_rejected(self, processor, events):
        body = _transaction(purchase_type="payg", store_id=TEST_STORE_ID, credits=10)

        with pytest.raises(WebhookVerificationError):
            await processor.handle(body, sign_paddle_body(body, secret="wrong"), "req_1")

        assert events.events == {}

    @pytest.mark.asyncio
    async def test_missing_signature_rejected(self, processor):
        with pytest.raises(WebhookVerificationError):
            await processor.handle(_transaction(), None, "req_1")

    @pytest.mark.asyncio
    async def test_stale_signature_rejected(self, processor):
        body = _transaction()
        with pytest.raises(WebhookVerificationError):
            await processor.handle(body, sign_paddle_body(body, timestamp=1_000_000), "req_1")

    @pytest.mark.asyncio
    async def test_missing_secret(self, events, ledger, accounts):
        processor = WebhookProcessor(events, ledger, accounts, "")
        body = _transaction()

        with pytest.raises(WebhookConfigurationError):
            await processor.handle(body, sign_paddle_body(body), "req_1")

    @pytest.mark.asyncio
    async def test_malformed_payload_not_recorded(self, processor, events):
        body = b'{"event_type": "transaction.completed"}'

        with pytest.raises(MalformedWebhookError):
            await _deliver(processor, body)

        assert events.events == {}


class TestPurchases:
    @pytest.mark.asyncio
    async def test_payg_grants_credits(self, processor, events, ledger):
        ack = await _deliver(processor, _transaction(
            purchase_type="payg", store_id=TEST_STORE_ID, credits=50
        ))

        assert ack.acknowledged is True
        assert ack.duplicate is None
        balance = await ledger.get_balance(TEST_STORE_ID)
        assert balance.balance == 50
        assert balance.total_purchased == 50
        assert events.events["evt_1"]["status"] == EventStatus.PROCESSED
        history = await ledger.get_transaction_history(TEST_STORE_ID)
        assert history[0].type == TransactionType.PURCHASE
        assert history[0].request_id == "evt_1"

    @pytest.mark.asyncio
    async def test_duplicate_delivery_grants_once(self, processor, ledger):
        body = _transaction(purchase_type="payg", store_id=TEST_STORE_ID, credits=50)

        await _deliver(processor, body)
        ack = await _deliver(processor, body)

        assert ack.duplicate is True
        assert (await ledger.get_balance(TEST_STORE_ID)).balance == 50

    @pytest.mark.asyncio
    async def test_subscription_grants_tier_credits(self, processor, ledger, accounts):
        await _deliver(processor, _transaction(
            purchase_type="subscription",
            store_id=TEST_STORE_ID,
            tier="growth",
            subscription_id="sub_1",
        ))

        balance = await ledger.get_balance(TEST_STORE_ID)
        assert balance.balance == 800
        history = await ledger.get_transaction_history(TEST_STORE_ID)
        assert history[0].type == TransactionType.SUBSCRIPTION

        store = accounts.get_store(TEST_STORE_ID)
        assert store["subscription_tier"] == "growth"
        assert store["subscription_id"] == "sub_1"
        assert store["subscription_status"] == "active"
        assert store["paddle_customer_id"] == "ctm_1"

    @pytest.mark.asyncio
    async def test_subscription_explicit_credits_win(self, processor, ledger):
        await _deliver(processor, _transaction(
            purchase_type="subscription", store_id=TEST_STORE_ID, tier="starter", credits=100
        ))

        assert (await ledger.get_balance(TEST_STORE_ID)).balance == 100

    @pytest.mark.asyncio
    async def test_subscription_store_resolved_by_subscription_id(
        self, processor, ledger, accounts
    ):
        accounts.add_store(TEST_STORE_ID, tier=SubscriptionTier.SCALE, subscription_id="sub_9")

        await _deliver(processor, _transaction(
            purchase_type="subscription", tier="scale", subscription_id="sub_9"
        ))

        assert (await ledger.get_balance(TEST_STORE_ID)).balance == 1800

    @pytest.mark.asyncio
    async def test_overage_transaction_grants_nothing(self, processor, ledger, events):
        await _deliver(processor, _transaction(
            purchase_type="overage", store_id=TEST_STORE_ID, tier="starter"
        ))

        assert (await ledger.get_balance(TEST_STORE_ID)).balance == 0
        assert events.events["evt_1"]["status"] == EventStatus.PROCESSED

    @pytest.mark.asyncio
    async def test_missing_purchase_type_acknowledged(self, processor, ledger):
        ack = await _deliver(processor, _transaction(store_id=TEST_STORE_ID))

        assert ack.acknowledged is True
        assert (await ledger.get_balance(TEST_STORE_ID)).balance == 0

    @pytest.mark.asyncio
    async def test_unresolvable_store_acknowledged(self, processor, ledger, events):
        ack = await _deliver(processor, _transaction(purchase_type="payg", credits=10))

        assert ack.acknowledged is True
        assert events.events["evt_1"]["status"] == EventStatus.PROCESSED

    @pytest.mark.asyncio
    async def test_grant_failure_marks_event_failed(self, processor, ledger, events):
        ledger.grant = AsyncMock(side_effect=RuntimeError("ledger down"))

        with pytest.raises(WebhookProcessingError):
            await _deliver(processor, _transaction(
                purchase_type="payg", store_id=TEST_STORE_ID, credits=10
            ))

        assert events.events["evt_1"]["status"] == EventStatus.FAILED
        assert "ledger down" in events.events["evt_1"]["error_message"]


class TestSubscriptionEvents:
    @pytest.mark.asyncio
    async def test_status_update(self, processor, accounts):
        accounts.add_store(TEST_STORE_ID, subscription_id="sub_1", subscription_status="active")
        body = json.dumps({
            "event_id": "evt_2",
            "event_type": "subscription.past_due",
            "data": {
                "id": "sub_1",
                "current_billing_period": {"ends_at": "2026-11-18T00:00:00Z"},
            },
        }).encode()

        await _deliver(processor, body)

        store = accounts.get_store(TEST_STORE_ID)
        assert store["subscription_status"] == "past_due"
        assert store["subscription_current_period_end"].startswith("2026-11-18")

    @pytest.mark.asyncio
    async def test_unknown_subscription_acknowledged(self, processor, accounts):
        body = json.dumps({
            "event_id": "evt_2",
            "event_type": "subscription.canceled",
            "data": {"id": "sub_unknown"},
        }).encode()

        ack = await _deliver(processor, body)

        assert ack.acknowledged is True
        assert accounts.get_store(TEST_STORE_ID)["subscription_status"] is None

    @pytest.mark.asyncio
    async def test_unhandled_event_acknowledged(self, processor, events):
        body = json.dumps({
            "event_id": "evt_3",
            "event_type": "customer.created",
            "data": {"id": "ctm_1"},
        }).encode()

        ack = await _deliver(processor, body)

        assert ack.acknowledged is True
        assert events.events["evt_3"]["status"] == EventStatus.PROCESSED
