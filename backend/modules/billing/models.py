"""
Billing module data models.

These models define the data structures used by the billing module
and exposed to other modules through the interface.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SubscriptionTier(str, Enum):
    """Merchant subscription tiers."""

    STARTER = "starter"
    GROWTH = "growth"
    SCALE = "scale"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["SubscriptionTier"]:
        """Map a stored tier to the enum; unknown values become None."""
        try:
            return cls(value) if value else None
        except ValueError:
            return None


class BillingMode(str, Enum):
    """Who pays for a generation."""

    ABSORB = "absorb_mode"  # Merchant pays (credits, then overage)
    RESELL = "resell_mode"  # Shopper pays from their own credits

    @classmethod
    def parse(cls, value: Optional[str]) -> "BillingMode":
        """Anything other than resell_mode is treated as absorb mode."""
        return cls.RESELL if value == cls.RESELL.value else cls.ABSORB


# Subscription status that permits overage billing
ACTIVE_SUBSCRIPTION_STATUS = "active"


class TierConfig(BaseModel):
    """Catalog entry for a subscription tier."""

    tier: SubscriptionTier
    credits: int = Field(..., description="Credits granted per billing period")
    monthly_price_cents: int = Field(..., description="Subscription price")
    overage_cents: int = Field(..., description="Price of one overage unit")


TIER_CATALOG: dict[SubscriptionTier, TierConfig] = {
    SubscriptionTier.STARTER: TierConfig(
        tier=SubscriptionTier.STARTER,
        credits=350,
        monthly_price_cents=4900,
        overage_cents=16,
    ),
    SubscriptionTier.GROWTH: TierConfig(
        tier=SubscriptionTier.GROWTH,
        credits=800,
        monthly_price_cents=9900,
        overage_cents=14,
    ),
    SubscriptionTier.SCALE: TierConfig(
        tier=SubscriptionTier.SCALE,
        credits=1800,
        monthly_price_cents=19900,
        overage_cents=12,
    ),
}


def get_tier_credits(tier: SubscriptionTier) -> int:
    """Credits granted by one period of a tier."""
    return TIER_CATALOG[tier].credits


def get_tier_overage_cents(tier: SubscriptionTier) -> int:
    """Price of one overage unit for a tier."""
    return TIER_CATALOG[tier].overage_cents


class BillingProfile(BaseModel):
    """
    A store's subscription state, as far as overage billing is concerned.

    Overage is allowed only for an exactly-"active" subscription with both a
    tier and a processor subscription id. Every other combination, including
    an unreadable profile, fails closed.
    """

    tier: Optional[SubscriptionTier] = None
    subscription_id: Optional[str] = None
    subscription_status: Optional[str] = None

    @property
    def allows_overage(self) -> bool:
        return (
            self.subscription_status == ACTIVE_SUBSCRIPTION_STATUS
            and self.tier is not None
            and bool(self.subscription_id)
        )


class SubscriptionUpdate(BaseModel):
    """Fields written to a store when the processor reports a change."""

    tier: Optional[SubscriptionTier] = None
    subscription_id: Optional[str] = None
    customer_id: Optional[str] = None
    status: Optional[str] = None
    current_period_end: Optional[datetime] = None

    def to_row(self) -> dict:
        """Only the fields that are set, keyed by stores column name."""
        row: dict = {}
        if self.tier is not None:
            row["subscription_tier"] = self.tier.value
        if self.subscription_id is not None:
            row["subscription_id"] = self.subscription_id
        if self.customer_id is not None:
            row["paddle_customer_id"] = self.customer_id
        if self.status is not None:
            row["subscription_status"] = self.status
        if self.current_period_end is not None:
            row["subscription_current_period_end"] = self.current_period_end.isoformat()
        return row
