"""
Webhook event log.

Every accepted delivery is recorded in billing_webhook_events, which has a
unique index on (provider, event_id). A unique violation on insert is the
deduplication signal: the event was already received.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError

from shared.repository import BaseRepository, is_unique_violation
from .exceptions import WebhookStorageError
from .models import DecodedWebhook, EventStatus, PADDLE_PROVIDER

logger = logging.getLogger(__name__)

EVENTS_TABLE = "billing_webhook_events"


class WebhookEventRepository(BaseRepository[DecodedWebhook]):
    """Repository for the webhook event log."""

    async def record(self, webhook: DecodedWebhook, request_id: str) -> bool:
        """
        Insert the event record.

        Returns:
            True for a new event, False if it was already recorded

        Raises:
            WebhookStorageError: For any failure other than a duplicate
        """
        row = {
            "provider": PADDLE_PROVIDER,
            "event_id": webhook.event.event_id,
            "event_type": webhook.event.event_type,
            "request_id": request_id,
            "store_id": webhook.candidate_store_id,
            "payload": webhook.payload,
            "status": EventStatus.RECEIVED.value,
        }
        try:
            self._db.table(EVENTS_TABLE).insert(row).execute()
        except APIError as e:
            if is_unique_violation(e):
                return False
            raise WebhookStorageError(webhook.event.event_id, str(e)) from e
        except httpx.HTTPError as e:
            raise WebhookStorageError(webhook.event.event_id, str(e)) from e
        return True

    async def mark_processed(self, event_id: str) -> None:
        """Mark the event applied."""
        self._set_status(event_id, EventStatus.PROCESSED, None)

    async def mark_failed(self, event_id: str, error: str) -> None:
        """Mark the event failed with the error text."""
        self._set_status(event_id, EventStatus.FAILED, error)

    def _set_status(self, event_id: str, status: EventStatus, error: Optional[str]) -> None:
        update: dict[str, Any] = {
            "status": status.value,
            "error_message": error,
            "processed_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            (
                self._db.table(EVENTS_TABLE)
                .update(update)
                .eq("provider", PADDLE_PROVIDER)
                .eq("event_id", event_id)
                .execute()
            )
        except (APIError, httpx.HTTPError) as e:
            raise WebhookStorageError(event_id, str(e)) from e


class InMemoryWebhookEventRepository:
    """
    Event log with in-memory storage.

    For testing and development.
    """

    def __init__(self):
        self.events: dict[str, dict[str, Any]] = {}

    async def record(self, webhook: DecodedWebhook, request_id: str) -> bool:
        event_id = webhook.event.event_id
        if event_id in self.events:
            return False
        self.events[event_id] = {
            "event_type": webhook.event.event_type,
            "request_id": request_id,
            "store_id": webhook.candidate_store_id,
            "payload": webhook.payload,
            "status": EventStatus.RECEIVED,
            "error_message": None,
        }
        return True

    async def mark_processed(self, event_id: str) -> None:
        self.events[event_id]["status"] = EventStatus.PROCESSED

    async def mark_failed(self, event_id: str, error: str) -> None:
        self.events[event_id]["status"] = EventStatus.FAILED
        self.events[event_id]["error_message"] = error
