"""
Paddle webhook processor.

Pipeline for one delivery:

    verify signature -> decode -> record (dedup) -> apply -> mark processed

Credits are granted with the Paddle event id as the idempotency token, so
even a delivery that slips past the event log cannot credit twice.
"""

import logging
from typing import Optional

from modules.billing.exceptions import WebhookVerificationError
from modules.billing.interfaces import IAccountWriter
from modules.billing.models import SubscriptionUpdate, get_tier_credits
from modules.billing.signature import DEFAULT_MAX_AGE_SECONDS, verify_paddle_signature
from modules.credits.interfaces import ICreditLedger
from modules.credits.models import GrantSource

from .interfaces import IWebhookEventLog
from .models import (
    PurchaseType,
    SubscriptionChangedEvent,
    TransactionCompletedEvent,
    WebhookAck,
    decode_paddle_event,
)
from .exceptions import (
    WebhookConfigurationError,
    WebhookProcessingError,
    WebhookStorageError,
)

logger = logging.getLogger(__name__)


class WebhookProcessor:
    """Verifies, deduplicates and applies Paddle deliveries."""

    def __init__(
        self,
        events: IWebhookEventLog,
        ledger: ICreditLedger,
        accounts: IAccountWriter,
        webhook_secret: str,
        max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    ):
        self._events = events
        self._ledger = ledger
        self._accounts = accounts
        self._secret = webhook_secret
        self._max_age_seconds = max_age_seconds

    async def handle(
        self,
        raw_body: bytes,
        signature_header: Optional[str],
        request_id: str,
    ) -> WebhookAck:
        """Process one delivery."""
        if not self._secret:
            logger.error("Paddle webhook secret not configured")
            raise WebhookConfigurationError()

        if not verify_paddle_signature(
            raw_body, signature_header, self._secret, self._max_age_seconds
        ):
            logger.warning("Paddle webhook signature verification failed")
            raise WebhookVerificationError()

        webhook = decode_paddle_event(raw_body)
        event = webhook.event

        if not await self._events.record(webhook, request_id):
            logger.info(f"Duplicate Paddle event {event.event_id} ignored")
            return WebhookAck(duplicate=True)

        try:
            if isinstance(event, TransactionCompletedEvent):
                await self._apply_transaction(event)
            elif isinstance(event, SubscriptionChangedEvent):
                await self._apply_subscription_change(event)
            else:
                logger.info(f"Paddle event {event.event_type} acknowledged without action")
        except Exception as e:
            logger.error(f"Processing Paddle event {event.event_id} failed: {e}")
            try:
                await self._events.mark_failed(event.event_id, str(e))
            except WebhookStorageError as mark_error:
                logger.error(f"Could not mark event {event.event_id} failed: {mark_error.message}")
            raise WebhookProcessingError(event.event_id) from e

        try:
            await self._events.mark_processed(event.event_id)
        except WebhookStorageError as e:
            logger.error(f"Could not mark event {event.event_id} processed: {e.message}")

        return WebhookAck()

    async def _resolve_store(
        self,
        store_id: Optional[str],
        subscription_id: Optional[str],
    ) -> Optional[str]:
        if store_id:
            return store_id
        if subscription_id:
            return await self._accounts.find_store_by_subscription(subscription_id)
        return None

    async def _apply_transaction(self, event: TransactionCompletedEvent) -> None:
        purchase_type = event.custom_data.purchase_type
        if purchase_type is None:
            logger.info(f"transaction.completed {event.event_id} without purchase_type")
            return

        store_id = await self._resolve_store(event.custom_data.store_id, event.subscription_id)
        if not store_id:
            logger.warning(
                f"Could not resolve store for {purchase_type.value} event {event.event_id}"
            )
            return

        if purchase_type is PurchaseType.SUBSCRIPTION:
            tier = event.tier
            if tier is not None:
                await self._accounts.update_subscription(store_id, SubscriptionUpdate(
                    tier=tier,
                    subscription_id=event.subscription_id,
                    customer_id=event.customer_id,
                    status="active",
                ))

            credits = event.custom_data.credits or (get_tier_credits(tier) if tier else 0)
            if credits > 0:
                await self._ledger.grant(
                    store_id,
                    credits,
                    GrantSource.SUBSCRIPTION,
                    event.event_id,
                    f"Paddle subscription top-up ({tier.value if tier else 'unknown_tier'})",
                )
            logger.info(f"Subscription payment for store {store_id}: {credits} credits")
            return

        if purchase_type is PurchaseType.PAYG:
            await self._ledger.grant(
                store_id,
                event.custom_data.credits,
                GrantSource.PURCHASE,
                event.event_id,
                f"Paddle PAYG purchase ({event.custom_data.credits} credits)",
            )
            logger.info(f"PAYG purchase for store {store_id}: {event.custom_data.credits} credits")
            return

        logger.info(f"Overage transaction acknowledged for store {store_id}")

    async def _apply_subscription_change(self, event: SubscriptionChangedEvent) -> None:
        store_id = await self._resolve_store(event.store_id, event.subscription_id)
        if not store_id:
            logger.warning(f"Could not resolve store for {event.event_type} {event.event_id}")
            return

        await self._accounts.update_subscription(store_id, SubscriptionUpdate(
            status=event.status,
            current_period_end=event.current_period_end,
        ))
