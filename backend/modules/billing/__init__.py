"""
Billing module.

Handles Paddle integration: store billing profiles, overage charges and
reversals, and webhook signature verification.

Public API:
- IBillingProfileResolver, IAccountWriter, IOverageBiller: Interfaces
- BillingProfile, BillingMode, SubscriptionTier: Billing state
- TIER_CATALOG: Credits and prices per subscription tier
- verify_paddle_signature: Webhook authenticity check
- Billing exceptions: OverageChargeError, etc.
"""

from .interfaces import IBillingProfileResolver, IAccountWriter, IOverageBiller
from .models import (
    BillingMode,
    BillingProfile,
    SubscriptionTier,
    SubscriptionUpdate,
    TierConfig,
    TIER_CATALOG,
    get_tier_credits,
    get_tier_overage_cents,
)
from .exceptions import (
    AccountStoreError,
    OverageChargeError,
    WebhookVerificationError,
    StoreNotFoundError,
)
from .signature import verify_paddle_signature

__all__ = [
    # Interfaces
    "IBillingProfileResolver",
    "IAccountWriter",
    "IOverageBiller",
    # Models
    "BillingMode",
    "BillingProfile",
    "SubscriptionTier",
    "SubscriptionUpdate",
    "TierConfig",
    "TIER_CATALOG",
    "get_tier_credits",
    "get_tier_overage_cents",
    # Exceptions
    "AccountStoreError",
    "OverageChargeError",
    "WebhookVerificationError",
    "StoreNotFoundError",
    # Signature
    "verify_paddle_signature",
]
