"""
Payment processor webhook endpoints.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.middleware.request_id import get_request_id
from api.dependencies import get_webhook_processor

from .interfaces import IWebhookProcessor

router = APIRouter()

SIGNATURE_HEADER = "Paddle-Signature"


@router.post("/paddle")
async def paddle_webhook(
    request: Request,
    request_id: str = Depends(get_request_id),
    processor: IWebhookProcessor = Depends(get_webhook_processor),
) -> JSONResponse:
    """
    Receive a Paddle delivery.

    The raw body is needed for signature verification, so it is read
    directly rather than parsed by FastAPI.
    """
    raw_body = await request.body()
    ack = await processor.handle(raw_body, request.headers.get(SIGNATURE_HEADER), request_id)
    return JSONResponse(content=ack.model_dump(exclude_none=True))
