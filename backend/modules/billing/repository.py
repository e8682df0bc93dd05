"""
Account repository for store billing configuration.

Reads and updates the billing columns of the stores table:
- billing_mode
- subscription_tier, subscription_id, subscription_status
- subscription_current_period_end, paddle_customer_id
"""

import logging
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError

from shared.repository import BaseRepository
from .exceptions import AccountStoreError, StoreNotFoundError
from .models import BillingMode, BillingProfile, SubscriptionTier, SubscriptionUpdate

logger = logging.getLogger(__name__)


class AccountRepository(BaseRepository[BillingProfile]):
    """
    Repository for store billing data.

    Implements IBillingProfileResolver and IAccountWriter. Profile reads
    fail closed: an unreadable profile is returned empty, which refuses
    overage billing.
    """

    def _execute(self, operation: str, query: Any, store_id: Optional[str] = None) -> Any:
        try:
            return query.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Store {operation} failed (store {store_id}): {e}")
            raise AccountStoreError(operation, store_id, str(e)) from e

    def _get_store_row(self, store_id: str, columns: str) -> Optional[dict[str, Any]]:
        query = self._db.table("stores").select(columns).eq("id", store_id).limit(1)
        result = self._execute("read", query, store_id)
        if not result.data:
            return None
        return result.data[0]

    async def get_billing_profile(self, store_id: str) -> BillingProfile:
        """Get the subscription tier, id and status for overage decisions."""
        try:
            row = self._get_store_row(
                store_id, "subscription_tier, subscription_id, subscription_status"
            )
        except AccountStoreError:
            return BillingProfile()

        if row is None:
            logger.warning(f"No billing profile for store {store_id}")
            return BillingProfile()

        return BillingProfile(
            tier=SubscriptionTier.parse(row.get("subscription_tier")),
            subscription_id=row.get("subscription_id") or None,
            subscription_status=row.get("subscription_status") or None,
        )

    async def get_billing_mode(self, store_id: str) -> BillingMode:
        """Get who pays for generations; raises StoreNotFoundError or AccountStoreError."""
        row = self._get_store_row(store_id, "billing_mode")
        if row is None:
            raise StoreNotFoundError(store_id)
        return BillingMode.parse(row.get("billing_mode"))

    async def find_store_by_subscription(self, subscription_id: str) -> Optional[str]:
        """Resolve a store id from a Paddle subscription id."""
        query = self._db.table("stores").select("id").eq("subscription_id", subscription_id).limit(1)
        result = self._execute("subscription lookup", query)
        if not result.data:
            return None
        return result.data[0]["id"]

    async def update_subscription(self, store_id: str, update: SubscriptionUpdate) -> None:
        """Write the subscription fields that are set on the update."""
        row = update.to_row()
        if not row:
            return
        query = self._db.table("stores").update(row).eq("id", store_id)
        self._execute("subscription update", query, store_id)
        logger.info(f"Updated subscription for store {store_id}: {sorted(row)}")


class InMemoryAccountRepository:
    """
    Account store with in-memory storage.

    For testing and development. Stores are seeded with add_store().
    """

    def __init__(self):
        self._stores: dict[str, dict[str, Any]] = {}

    def add_store(
        self,
        store_id: str,
        billing_mode: BillingMode = BillingMode.ABSORB,
        tier: Optional[SubscriptionTier] = None,
        subscription_id: Optional[str] = None,
        subscription_status: Optional[str] = None,
    ) -> None:
        self._stores[store_id] = {
            "billing_mode": billing_mode.value,
            "subscription_tier": tier.value if tier else None,
            "subscription_id": subscription_id,
            "subscription_status": subscription_status,
        }

    def get_store(self, store_id: str) -> Optional[dict[str, Any]]:
        return self._stores.get(store_id)

    async def get_billing_profile(self, store_id: str) -> BillingProfile:
        row = self._stores.get(store_id)
        if row is None:
            return BillingProfile()
        return BillingProfile(
            tier=SubscriptionTier.parse(row.get("subscription_tier")),
            subscription_id=row.get("subscription_id"),
            subscription_status=row.get("subscription_status"),
        )

    async def get_billing_mode(self, store_id: str) -> BillingMode:
        row = self._stores.get(store_id)
        if row is None:
            raise StoreNotFoundError(store_id)
        return BillingMode.parse(row.get("billing_mode"))

    async def find_store_by_subscription(self, subscription_id: str) -> Optional[str]:
        for store_id, row in self._stores.items():
            if row.get("subscription_id") == subscription_id:
                return store_id
        return None

    async def update_subscription(self, store_id: str, update: SubscriptionUpdate) -> None:
        self._stores.setdefault(store_id, {}).update(update.to_row())
