"""
Billing module interfaces.

Other modules should depend on these protocols, not the concrete
implementations. The generation module uses them to decide on and bill
overage without knowing about Paddle or the stores table.
"""

from typing import Protocol, Optional, runtime_checkable

from .models import BillingMode, BillingProfile, SubscriptionTier, SubscriptionUpdate


@runtime_checkable
class IBillingProfileResolver(Protocol):
    """Read access to a store's billing configuration."""

    async def get_billing_profile(self, store_id: str) -> BillingProfile:
        """
        Get the store's subscription tier, id and status.

        Never raises for a missing or unreadable store: the empty profile
        is returned instead, which refuses overage.
        """
        ...

    async def get_billing_mode(self, store_id: str) -> BillingMode:
        """
        Get who pays for the store's generations.

        Raises:
            StoreNotFoundError: If the store does not exist
            AccountStoreError: If the store could not be read
        """
        ...


@runtime_checkable
class IAccountWriter(Protocol):
    """Subscription updates driven by processor events."""

    async def find_store_by_subscription(self, subscription_id: str) -> Optional[str]:
        """Resolve a store id from a processor subscription id; raises AccountStoreError."""
        ...

    async def update_subscription(self, store_id: str, update: SubscriptionUpdate) -> None:
        """Persist subscription fields reported by the processor; raises AccountStoreError."""
        ...


@runtime_checkable
class IOverageBiller(Protocol):
    """Interface for per-unit overage billing."""

    async def charge(
        self,
        subscription_id: str,
        tier: SubscriptionTier,
        store_id: str,
        session_id: str,
        request_id: str,
    ) -> str:
        """
        Bill one overage unit against the subscription.

        Returns:
            The processor's charge id, needed to reverse the charge

        Raises:
            OverageChargeError: On any failure; never treated as success
        """
        ...

    async def reverse(self, charge_id: str, request_id: str, reason: str) -> None:
        """
        Refund a prior charge in full.

        Best-effort: failures are logged for manual reconciliation and
        never raised.
        """
        ...
