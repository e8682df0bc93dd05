"""
Credits module interface.

Other modules depend on ICreditLedger, not a concrete implementation.
The generation module reserves and refunds units through it, and the
webhooks module grants purchased credits through it.
"""

from typing import Protocol, runtime_checkable

from .models import CreditBalance, GrantSource


@runtime_checkable
class ICreditLedger(Protocol):
    """
    Interface for atomic, idempotent credit operations.

    Every mutation is keyed by an idempotency token (the request id, or the
    provider event id for grants). Re-applying a token is a no-op.
    """

    async def deduct(
        self,
        store_id: str,
        amount: int,
        idempotency_token: str,
        description: str,
    ) -> bool:
        """
        Atomically reserve credits.

        Returns:
            True if the credits were reserved (or the token already holds
            a live reservation), False if the balance is insufficient.

        Raises:
            InvalidAmountError: If amount is not positive
            RequestIdReusedError: If the token's reservation was refunded
            LedgerUnavailableError: If the outcome is unknown
        """
        ...

    async def refund(
        self,
        store_id: str,
        amount: int,
        idempotency_token: str,
        description: str,
    ) -> None:
        """
        Reverse the reservation made with the same token.

        A duplicate refund, or a refund with no matching reservation,
        is a no-op.
        """
        ...

    async def grant(
        self,
        store_id: str,
        amount: int,
        source: GrantSource,
        idempotency_token: str,
        description: str,
    ) -> None:
        """Unconditionally add credits to the balance."""
        ...

    async def get_balance(self, store_id: str) -> CreditBalance:
        """Read the balance. A missing store yields an all-zero balance."""
        ...

    async def deduct_shopper(
        self,
        store_id: str,
        shopper_email: str,
        amount: int,
        idempotency_token: str,
        description: str,
    ) -> bool:
        """Reserve credits from a shopper's balance (resell mode); same contract as deduct."""
        ...

    async def refund_shopper(
        self,
        store_id: str,
        shopper_email: str,
        amount: int,
        idempotency_token: str,
        description: str,
    ) -> None:
        """Reverse a shopper reservation made with the same token."""
        ...

    async def get_shopper_balance(
        self,
        store_id: str,
        shopper_email: str,
    ) -> CreditBalance:
        """Read a shopper's balance. Missing rows yield zeros."""
        ...

    async def log_overage(
        self,
        store_id: str,
        idempotency_token: str,
        description: str,
    ) -> None:
        """Record a billed overage unit without touching any balance."""
        ...
