"""
Generation module exceptions.

These exceptions are raised by the fulfillment orchestrator and mapped to
HTTP responses by the API error handlers.
"""

from typing import Optional

from shared.exceptions import (
    InternalError,
    NotFoundError,
    PaymentRequiredError,
    ServiceUnavailableError,
    ValidationError,
)

from .models import store_upload_path


class InsufficientCreditError(PaymentRequiredError):
    """Raised when no credit is available and overage is not permitted."""

    def __init__(self, message: str = "Insufficient credits to create generation"):
        super().__init__(message, code="INSUFFICIENT_CREDITS")


class BillingFailureError(ServiceUnavailableError):
    """Raised when the overage charge failed. Nothing was created."""

    def __init__(self, message: str = "Overage billing temporarily unavailable"):
        super().__init__(message, code="SERVICE_UNAVAILABLE")


class QueueFailureError(ServiceUnavailableError):
    """
    Raised when the generation task could not be queued.

    When raised by the orchestrator, the session has been marked failed and
    the payment compensated; the caller may retry with a new request id.
    """

    def __init__(self, message: str = "Generation service temporarily unavailable"):
        super().__init__(message, code="SERVICE_UNAVAILABLE")


class SessionStoreError(InternalError):
    """Raised when the session table could not be read or written."""

    def __init__(self, operation: str, error: str, session_id: Optional[str] = None):
        super().__init__(
            f"Generation session {operation} failed: {error}",
            code="INTERNAL_ERROR",
            details={"operation": operation, "session_id": session_id},
        )


class DuplicateSessionError(SessionStoreError):
    """Raised when the store already has a session for the request id."""

    def __init__(self, request_id: str, session_id: Optional[str] = None):
        super().__init__("create", f"request {request_id} already has a session", session_id)
        self.request_id = request_id


class SessionCreationError(InternalError):
    """Raised when the session row could not be created (payment compensated)."""

    def __init__(self):
        super().__init__("Failed to create generation session", code="INTERNAL_ERROR")


class InvalidImageUrlError(ValidationError):
    """Raised when an image url is outside the store's upload area."""

    def __init__(self, store_id: str):
        super().__init__(
            f"image_urls must use store-scoped paths under {store_upload_path(store_id)}/",
            code="VALIDATION_ERROR",
        )


class InvalidSessionIdError(ValidationError):
    """Raised when a session id is not a UUID."""

    def __init__(self):
        super().__init__("Invalid session ID format", code="VALIDATION_ERROR")


class SessionNotFoundError(NotFoundError):
    """Raised when a session does not exist for the calling store."""

    def __init__(self, session_id: str):
        super().__init__(
            "Generation session not found",
            code="NOT_FOUND",
            details={"session_id": session_id},
        )
