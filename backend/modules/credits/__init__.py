"""
Credits module.

Atomic, idempotent credit ledger for store and shopper balances.

Public API:
- ICreditLedger: Interface for ledger operations
- CreditBalance, CreditTransaction: Ledger data
- Credits exceptions: InvalidAmountError, LedgerUnavailableError, etc.
"""

from .interfaces import ICreditLedger
from .models import (
    BalanceResponse,
    CreditBalance,
    CreditTransaction,
    GrantSource,
    TransactionType,
)
from .exceptions import (
    InvalidAmountError,
    InvalidShopperEmailError,
    LedgerUnavailableError,
    RequestIdReusedError,
)

__all__ = [
    # Interface
    "ICreditLedger",
    # Models
    "BalanceResponse",
    "CreditBalance",
    "CreditTransaction",
    "GrantSource",
    "TransactionType",
    # Exceptions
    "InvalidAmountError",
    "InvalidShopperEmailError",
    "LedgerUnavailableError",
    "RequestIdReusedError",
]
