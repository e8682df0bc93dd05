"""
Webhooks module.

Ingests Paddle deliveries: verifies signatures, deduplicates by event id
and grants purchased or subscription credits.

Public API:
- IWebhookProcessor, IWebhookEventLog: Interfaces
- decode_paddle_event: Payload decoding into event variants
- WebhookAck: Response body
- Webhook exceptions: MalformedWebhookError, WebhookProcessingError, etc.
"""

from .interfaces import IWebhookEventLog, IWebhookProcessor
from .models import (
    DecodedWebhook,
    EventStatus,
    PurchaseType,
    SubscriptionChangedEvent,
    TransactionCompletedEvent,
    UnhandledEvent,
    WebhookAck,
    decode_paddle_event,
)
from .exceptions import (
    MalformedWebhookError,
    WebhookConfigurationError,
    WebhookProcessingError,
    WebhookStorageError,
)

__all__ = [
    # Interfaces
    "IWebhookEventLog",
    "IWebhookProcessor",
    # Models
    "DecodedWebhook",
    "EventStatus",
    "PurchaseType",
    "SubscriptionChangedEvent",
    "TransactionCompletedEvent",
    "UnhandledEvent",
    "WebhookAck",
    "decode_paddle_event",
    # Exceptions
    "MalformedWebhookError",
    "WebhookConfigurationError",
    "WebhookProcessingError",
    "WebhookStorageError",
]
