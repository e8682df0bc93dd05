"""
Credit ledger implementations.

Provides both in-memory (for testing) and Supabase-backed (for production)
implementations of ICreditLedger.

The Supabase ledger delegates every mutation to a single database function
(see migrations/001_b2b_billing.sql). Balance checks and idempotency are
decided inside the database, never by read-then-write from Python.
"""

import asyncio
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Union

import httpx
from postgrest.exceptions import APIError

from .models import CreditBalance, CreditTransaction, GrantSource, TransactionType
from .exceptions import (
    InvalidAmountError,
    InvalidShopperEmailError,
    LedgerUnavailableError,
    RequestIdReusedError,
)

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Ledger key: a store id, or (store id, shopper e-mail) for resell balances
LedgerKey = Union[str, tuple[str, str]]

# SQLSTATE raised by the deduct functions for a token that was already refunded
REQUEST_ID_REUSED_SQLSTATE = "WO409"


def normalize_shopper_email(shopper_email: str) -> str:
    """Trim and lower-case a shopper e-mail; raise if it is not an address."""
    normalized = (shopper_email or "").strip().lower()
    if not normalized or not _EMAIL_PATTERN.match(normalized):
        raise InvalidShopperEmailError()
    return normalized


def _validate_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidAmountError(amount, "Amount must be a positive whole number")


class CreditLedger:
    """
    Credit ledger with in-memory storage.

    For testing and development. Use SupabaseCreditLedger for production.
    A single asyncio.Lock serialises every mutation, standing in for the
    database's row lock.
    """

    def __init__(self):
        self._balances: dict[LedgerKey, CreditBalance] = {}
        self._applied: set[tuple[str, LedgerKey, str]] = set()
        self._transactions: list[CreditTransaction] = []
        self._lock = asyncio.Lock()

    def _record(
        self,
        key: LedgerKey,
        amount: int,
        type: TransactionType,
        token: str,
        description: str,
    ) -> None:
        store_id, shopper_email = (key, None) if isinstance(key, str) else key
        self._transactions.insert(0, CreditTransaction(
            id=str(uuid.uuid4()),
            store_id=store_id,
            shopper_email=shopper_email,
            amount=amount,
            type=type,
            request_id=token,
            description=description,
            created_at=datetime.now(timezone.utc),
        ))

    async def _deduct(self, key: LedgerKey, amount: int, token: str, description: str) -> bool:
        _validate_amount(amount)
        async with self._lock:
            if ("deduct", key, token) in self._applied:
                if ("refund", key, token) in self._applied:
                    raise RequestIdReusedError(key if isinstance(key, str) else key[0], token)
                return True

            current = self._balances.get(key, CreditBalance())
            if current.balance < amount:
                return False

            self._balances[key] = CreditBalance(
                balance=current.balance - amount,
                total_purchased=current.total_purchased,
                total_spent=current.total_spent + amount,
            )
            self._applied.add(("deduct", key, token))
            self._record(key, -amount, TransactionType.DEDUCT, token, description)
            return True

    async def _refund(self, key: LedgerKey, amount: int, token: str, description: str) -> None:
        _validate_amount(amount)
        async with self._lock:
            if ("deduct", key, token) not in self._applied:
                logger.warning(f"Refund for {key} ignored: no reservation for token {token}")
                return
            if ("refund", key, token) in self._applied:
                return

            current = self._balances.get(key, CreditBalance())
            self._balances[key] = CreditBalance(
                balance=current.balance + amount,
                total_purchased=current.total_purchased,
                total_spent=current.total_spent - amount,
            )
            self._applied.add(("refund", key, token))
            self._record(key, amount, TransactionType.REFUND, token, description)

    async def deduct(
        self,
        store_id: str,
        amount: int,
        idempotency_token: str,
        description: str = "Generation credit deduction",
    ) -> bool:
        """Reserve credits from the store balance."""
        return await self._deduct(store_id, amount, idempotency_token, description)

    async def refund(
        self,
        store_id: str,
        amount: int,
        idempotency_token: str,
        description: str = "Generation failed - refund",
    ) -> None:
        """Reverse the store reservation made with the same token."""
        await self._refund(store_id, amount, idempotency_token, description)

    async def grant(
        self,
        store_id: str,
        amount: int,
        source: GrantSource,
        idempotency_token: str,
        description: str,
    ) -> None:
        """Add purchased or subscription credits."""
        _validate_amount(amount)
        async with self._lock:
            if ("grant", store_id, idempotency_token) in self._applied:
                return

            current = self._balances.get(store_id, CreditBalance())
            self._balances[store_id] = CreditBalance(
                balance=current.balance + amount,
                total_purchased=current.total_purchased + amount,
                total_spent=current.total_spent,
            )
            self._applied.add(("grant", store_id, idempotency_token))
            self._record(
                store_id, amount, TransactionType(source.value), idempotency_token, description
            )

    async def get_balance(self, store_id: str) -> CreditBalance:
        """Get the store balance."""
        return self._balances.get(store_id, CreditBalance())

    async def deduct_shopper(
        self,
        store_id: str,
        shopper_email: str,
        amount: int,
        idempotency_token: str,
        description: str = "B2B shopper generation",
    ) -> bool:
        """Reserve credits from a shopper balance."""
        key = (store_id, normalize_shopper_email(shopper_email))
        return await self._deduct(key, amount, idempotency_token, description)

    async def refund_shopper(
        self,
        store_id: str,
        shopper_email: str,
        amount: int,
        idempotency_token: str,
        description: str = "B2B shopper generation failed - refund",
    ) -> None:
        """Reverse a shopper reservation."""
        key = (store_id, normalize_shopper_email(shopper_email))
        await self._refund(key, amount, idempotency_token, description)

    async def grant_shopper(
        self,
        store_id: str,
        shopper_email: str,
        amount: int,
        idempotency_token: str,
        description: str = "Shopper credit purchase",
    ) -> None:
        """Seed a shopper balance (shopper purchases arrive via the store platform)."""
        _validate_amount(amount)
        key = (store_id, normalize_shopper_email(shopper_email))
        async with self._lock:
            if ("grant", key, idempotency_token) in self._applied:
                return
            current = self._balances.get(key, CreditBalance())
            self._balances[key] = CreditBalance(
                balance=current.balance + amount,
                total_purchased=current.total_purchased + amount,
                total_spent=current.total_spent,
            )
            self._applied.add(("grant", key, idempotency_token))
            self._record(key, amount, TransactionType.PURCHASE, idempotency_token, description)

    async def get_shopper_balance(self, store_id: str, shopper_email: str) -> CreditBalance:
        """Get a shopper balance."""
        key = (store_id, normalize_shopper_email(shopper_email))
        return self._balances.get(key, CreditBalance())

    async def log_overage(
        self,
        store_id: str,
        idempotency_token: str,
        description: str,
    ) -> None:
        """Record an overage unit for audit."""
        async with self._lock:
            self._record(store_id, -1, TransactionType.OVERAGE, idempotency_token, description)

    async def get_transaction_history(
        self,
        store_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[CreditTransaction]:
        """Get a store's ledger rows, most recent first."""
        rows = [t for t in self._transactions if t.store_id == store_id]
        return rows[offset : offset + limit]


class SupabaseCreditLedger:
    """
    Credit ledger backed by Supabase database functions.

    Each call is one RPC, which runs as a single atomic statement with a
    unique index on (store, type, request_id) enforcing idempotency.
    """

    def __init__(self, supabase_client: Any):
        """
        Initialize with Supabase client.

        Args:
            supabase_client: Supabase client instance
        """
        self._db = supabase_client

    def _rpc(self, function: str, params: dict[str, Any], store_id: str) -> Any:
        try:
            return self._db.rpc(function, params).execute().data
        except (APIError, httpx.HTTPError) as e:
            if getattr(e, "code", None) == REQUEST_ID_REUSED_SQLSTATE:
                raise RequestIdReusedError(store_id, params.get("p_request_id")) from e
            logger.error(
                f"Ledger RPC {function} failed for store {store_id} "
                f"(token {params.get('p_request_id')}): {e}"
            )
            raise LedgerUnavailableError(function, store_id, str(e)) from e

    def _read_balance(self, query: Any, store_id: str) -> CreditBalance:
        try:
            result = query.limit(1).execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Balance query failed for store {store_id}: {e}")
            raise LedgerUnavailableError("balance query", store_id, str(e)) from e

        if not result.data:
            return CreditBalance()

        row = result.data[0]
        return CreditBalance(
            balance=row.get("balance", 0),
            total_purchased=row.get("total_purchased", 0),
            total_spent=row.get("total_spent", 0),
        )

    async def deduct(
        self,
        store_id: str,
        amount: int,
        idempotency_token: str,
        description: str = "Generation credit deduction",
    ) -> bool:
        """Reserve credits via deduct_store_credits()."""
        _validate_amount(amount)
        data = self._rpc("deduct_store_credits", {
            "p_store_id": store_id,
            "p_amount": amount,
            "p_request_id": idempotency_token,
            "p_description": description,
        }, store_id)
        return data is True

    async def refund(
        self,
        store_id: str,
        amount: int,
        idempotency_token: str,
        description: str = "Generation failed - refund",
    ) -> None:
        """Reverse a reservation via refund_store_credits()."""
        _validate_amount(amount)
        self._rpc("refund_store_credits", {
            "p_store_id": store_id,
            "p_amount": amount,
            "p_request_id": idempotency_token,
            "p_description": description,
        }, store_id)

    async def grant(
        self,
        store_id: str,
        amount: int,
        source: GrantSource,
        idempotency_token: str,
        description: str,
    ) -> None:
        """Add credits via add_store_credits()."""
        _validate_amount(amount)
        self._rpc("add_store_credits", {
            "p_store_id": store_id,
            "p_amount": amount,
            "p_type": source.value,
            "p_request_id": idempotency_token,
            "p_description": description,
        }, store_id)

    async def get_balance(self, store_id: str) -> CreditBalance:
        """Read the store_credits row."""
        query = self._db.table("store_credits").select(
            "balance, total_purchased, total_spent"
        ).eq("store_id", store_id)
        return self._read_balance(query, store_id)

    async def deduct_shopper(
        self,
        store_id: str,
        shopper_email: str,
        amount: int,
        idempotency_token: str,
        description: str = "B2B shopper generation",
    ) -> bool:
        """Reserve shopper credits via deduct_store_shopper_credits()."""
        _validate_amount(amount)
        data = self._rpc("deduct_store_shopper_credits", {
            "p_store_id": store_id,
            "p_shopper_email": normalize_shopper_email(shopper_email),
            "p_amount": amount,
            "p_request_id": idempotency_token,
            "p_description": description,
        }, store_id)
        return data is True

    async def refund_shopper(
        self,
        store_id: str,
        shopper_email: str,
        amount: int,
        idempotency_token: str,
        description: str = "B2B shopper generation failed - refund",
    ) -> None:
        """Reverse a shopper reservation via refund_store_shopper_credits()."""
        _validate_amount(amount)
        self._rpc("refund_store_shopper_credits", {
            "p_store_id": store_id,
            "p_shopper_email": normalize_shopper_email(shopper_email),
            "p_amount": amount,
            "p_request_id": idempotency_token,
            "p_description": description,
        }, store_id)

    async def get_shopper_balance(self, store_id: str, shopper_email: str) -> CreditBalance:
        """Read the store_shopper_credits row."""
        query = self._db.table("store_shopper_credits").select(
            "balance, total_purchased, total_spent"
        ).eq("store_id", store_id).eq("shopper_email", normalize_shopper_email(shopper_email))
        return self._read_balance(query, store_id)

    async def log_overage(
        self,
        store_id: str,
        idempotency_token: str,
        description: str,
    ) -> None:
        """Insert an overage audit row; balances are untouched."""
        try:
            self._db.table("store_credit_transactions").insert({
                "store_id": store_id,
                "amount": -1,
                "type": TransactionType.OVERAGE.value,
                "request_id": idempotency_token,
                "description": description,
            }).execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Overage log insert failed for store {store_id}: {e}")
            raise LedgerUnavailableError("overage log", store_id, str(e)) from e

