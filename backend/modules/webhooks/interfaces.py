"""
Webhooks module interfaces.
"""

from typing import Protocol, Optional, runtime_checkable

from .models import DecodedWebhook, WebhookAck


@runtime_checkable
class IWebhookEventLog(Protocol):
    """Deduplicating store for inbound processor events."""

    async def record(self, webhook: DecodedWebhook, request_id: str) -> bool:
        """Insert the event; False means it was already recorded."""
        ...

    async def mark_processed(self, event_id: str) -> None:
        """Mark the event applied."""
        ...

    async def mark_failed(self, event_id: str, error: str) -> None:
        """Mark the event failed with the error text."""
        ...


@runtime_checkable
class IWebhookProcessor(Protocol):
    """Verifies, deduplicates and applies Paddle deliveries."""

    async def handle(
        self,
        raw_body: bytes,
        signature_header: Optional[str],
        request_id: str,
    ) -> WebhookAck:
        """
        Process one delivery.

        Raises:
            WebhookVerificationError: Bad or stale signature
            MalformedWebhookError: Undecodable payload (nothing recorded)
            WebhookStorageError: Event log insert failed
            WebhookProcessingError: Recorded, but applying it failed
        """
        ...
