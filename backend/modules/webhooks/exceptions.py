"""
Webhooks module exceptions.
"""

from typing import Optional

from shared.exceptions import InternalError, ValidationError


class MalformedWebhookError(ValidationError):
    """Raised when a delivery cannot be decoded. Nothing is recorded."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"errors": errors} if errors else {},
        )


class WebhookConfigurationError(InternalError):
    """Raised when the webhook secret is not configured."""

    def __init__(self):
        super().__init__("Webhook secret not configured", code="INTERNAL_ERROR")


class WebhookStorageError(InternalError):
    """Raised when the event log could not be written."""

    def __init__(self, event_id: str, error: str):
        super().__init__(
            "Failed to persist webhook event",
            code="INTERNAL_ERROR",
            details={"event_id": event_id, "error": error},
        )


class WebhookProcessingError(InternalError):
    """
    Raised when a recorded event could not be applied.

    The event record is marked failed. A replay of the same event is a
    duplicate, so recovery is an operational task.
    """

    def __init__(self, event_id: str):
        super().__init__(
            "Webhook processing failed",
            code="INTERNAL_ERROR",
            details={"event_id": event_id},
        )
