"""
Credits module data models.

Credits are whole units: one credit pays for one generation.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    """Types of credit ledger transactions."""

    DEDUCT = "deduct"              # Unit reserved for a generation
    REFUND = "refund"              # Reservation reversed after a failure
    PURCHASE = "purchase"          # Pay-as-you-go credit pack
    SUBSCRIPTION = "subscription"  # Subscription top-up
    OVERAGE = "overage"            # Unit billed outside the balance (audit only)


class GrantSource(str, Enum):
    """Where granted credits came from."""

    PURCHASE = "purchase"
    SUBSCRIPTION = "subscription"


class CreditBalance(BaseModel):
    """
    A store's (or shopper's) credit balance.

    Invariant: balance == total_purchased - total_spent.
    """

    balance: int = Field(default=0, ge=0, description="Credits available")
    total_purchased: int = Field(default=0, ge=0, description="Credits ever granted")
    total_spent: int = Field(default=0, ge=0, description="Credits consumed (net of refunds)")


class CreditTransaction(BaseModel):
    """A ledger audit row."""

    id: str = Field(..., description="Transaction ID (UUID)")
    store_id: str = Field(..., description="Store ID")
    shopper_email: Optional[str] = Field(None, description="Shopper, for resell-mode balances")
    amount: int = Field(..., description="Signed amount (negative for deductions)")
    type: TransactionType = Field(..., description="Transaction type")
    request_id: Optional[str] = Field(None, description="Idempotency token")
    description: Optional[str] = Field(None, description="Human-readable reason")
    created_at: datetime = Field(..., description="Transaction timestamp")


class BalanceResponse(BaseModel):
    """API response for balance queries."""

    balance: int
    total_purchased: int
    total_spent: int
