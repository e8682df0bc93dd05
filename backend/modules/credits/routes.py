"""
Credit balance API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header

from api.middleware.auth import get_current_merchant
from api.dependencies import get_credit_ledger
from shared.models import AuthenticatedMerchant

from .interfaces import ICreditLedger
from .models import BalanceResponse
from .exceptions import InvalidShopperEmailError

router = APIRouter()


@router.get("/balance", response_model=BalanceResponse)
async def get_store_balance(
    merchant: AuthenticatedMerchant = Depends(get_current_merchant),
    ledger: ICreditLedger = Depends(get_credit_ledger),
) -> BalanceResponse:
    """Get the calling store's credit balance."""
    balance = await ledger.get_balance(merchant.store_id)
    return BalanceResponse(**balance.model_dump())


@router.get("/shopper", response_model=BalanceResponse)
async def get_shopper_balance(
    shopper_email: Optional[str] = Header(default=None, alias="X-Shopper-Email"),
    merchant: AuthenticatedMerchant = Depends(get_current_merchant),
    ledger: ICreditLedger = Depends(get_credit_ledger),
) -> BalanceResponse:
    """
    Get a shopper's credit balance at the calling store.

    The shopper is identified by the X-Shopper-Email header.
    """
    if not shopper_email:
        raise InvalidShopperEmailError()
    balance = await ledger.get_shopper_balance(merchant.store_id, shopper_email)
    return BalanceResponse(**balance.model_dump())
