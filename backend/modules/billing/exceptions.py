"""
Billing module exceptions.

These exceptions are raised by the billing module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from typing import Optional

from shared.exceptions import (
    ExternalServiceError,
    AuthenticationError,
    InternalError,
    NotFoundError,
)


class OverageChargeError(ExternalServiceError):
    """
    Raised when an overage charge could not be created.

    Covers declines, timeouts, unreachable processor, malformed responses
    and missing configuration. A charge that raised this was not billed
    as far as the caller can tell.
    """

    def __init__(self, message: str, processor_error: Optional[str] = None):
        super().__init__(
            message,
            service="paddle",
            code="OVERAGE_CHARGE_FAILED",
            details={"processor_error": processor_error} if processor_error else {},
        )


class WebhookVerificationError(AuthenticationError):
    """Raised when Paddle webhook signature verification fails."""

    def __init__(self):
        super().__init__(
            "Invalid webhook signature",
            code="INVALID_SIGNATURE",
        )


class StoreNotFoundError(NotFoundError):
    """Raised when a store has no configuration row."""

    def __init__(self, store_id: str):
        super().__init__(
            "Store configuration not found",
            code="NOT_FOUND",
            details={"store_id": store_id},
        )


class AccountStoreError(InternalError):
    """Raised when the stores table could not be read or written."""

    def __init__(self, operation: str, store_id: Optional[str], error: str):
        super().__init__(
            f"Store account {operation} failed: {error}",
            code="INTERNAL_ERROR",
            details={"operation": operation, "store_id": store_id},
        )
