"""
Exception handlers.

Route code raises domain exceptions; these handlers turn them into JSON
responses of the form {"error": code, "message": ..., "details": ...}.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.exceptions import (
    AuthenticationError,
    ConflictError,
    ExternalServiceError,
    InternalError,
    NotFoundError,
    PaymentRequiredError,
    ServiceUnavailableError,
    ValidationError,
    WearOnError,
)

logger = logging.getLogger(__name__)

# Checked in order; the first matching base wins
STATUS_BY_ERROR: list[tuple[type[WearOnError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (PaymentRequiredError, status.HTTP_402_PAYMENT_REQUIRED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ServiceUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
    (InternalError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(error: WearOnError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def wearon_error_handler(request: Request, exc: WearOnError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Invalid request",
            "details": {"errors": errors},
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain and validation handlers on the app."""
    app.add_exception_handler(WearOnError, wearon_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
