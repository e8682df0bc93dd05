"""
Generation API endpoints.

Creating a generation pays for it (credit or overage), records a session
and queues the work. The X-Request-Id header is the idempotency token for
the payment.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header

from api.middleware.auth import get_current_merchant
from api.middleware.request_id import get_request_id
from api.dependencies import get_orchestrator
from shared.models import AuthenticatedMerchant

from .interfaces import IFulfillmentOrchestrator
from .models import (
    CreateGenerationRequest,
    CreateGenerationResponse,
    GenerationStatusResponse,
)

router = APIRouter()


@router.post("", response_model=CreateGenerationResponse, status_code=201)
async def create_generation(
    request: CreateGenerationRequest,
    shopper_email: Optional[str] = Header(default=None, alias="X-Shopper-Email"),
    merchant: AuthenticatedMerchant = Depends(get_current_merchant),
    request_id: str = Depends(get_request_id),
    orchestrator: IFulfillmentOrchestrator = Depends(get_orchestrator),
) -> CreateGenerationResponse:
    """
    Create a generation.

    Responses:
    - 201: queued
    - 400: invalid body, image urls or shopper e-mail
    - 402: no credit and overage not available
    - 503: billing or queue temporarily unavailable (safe to retry)
    """
    return await orchestrator.create_generation(
        merchant.store_id, request, request_id, shopper_email
    )


@router.get("/{session_id}", response_model=GenerationStatusResponse)
async def get_generation(
    session_id: str,
    merchant: AuthenticatedMerchant = Depends(get_current_merchant),
    orchestrator: IFulfillmentOrchestrator = Depends(get_orchestrator),
) -> GenerationStatusResponse:
    """Get a generation session belonging to the calling store."""
    return await orchestrator.get_generation(merchant.store_id, session_id)
