"""
Webhooks module data models.

Paddle deliveries are decoded into one of a closed set of event variants
before any credit logic runs. Anything that does not fit a variant is
rejected, so the processor never acts on a half-understood payload.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, model_validator
from pydantic import ValidationError as PydanticValidationError

from modules.billing.models import SubscriptionTier
from .exceptions import MalformedWebhookError

PADDLE_PROVIDER = "paddle"


class PurchaseType(str, Enum):
    """What a completed transaction paid for (from custom_data)."""

    SUBSCRIPTION = "subscription"
    PAYG = "payg"
    OVERAGE = "overage"


class EventStatus(str, Enum):
    """Processing status of a recorded webhook event."""

    RECEIVED = "received"
    PROCESSED = "processed"
    FAILED = "failed"


# Subscription status implied by an event type when the payload has none
SUBSCRIPTION_STATUS_BY_EVENT = {
    "subscription.activated": "active",
    "subscription.resumed": "active",
    "subscription.past_due": "past_due",
    "subscription.paused": "paused",
    "subscription.canceled": "canceled",
}


class TransactionCustomData(BaseModel):
    """custom_data attached to checkouts and charges we create."""

    model_config = ConfigDict(extra="ignore")

    purchase_type: Optional[PurchaseType] = None
    store_id: Optional[str] = None
    tier: Optional[str] = None
    credits: Optional[PositiveInt] = None

    @model_validator(mode="after")
    def payg_requires_credits(self) -> "TransactionCustomData":
        if self.purchase_type is PurchaseType.PAYG and self.credits is None:
            raise ValueError("payg purchases must carry a positive credits count")
        return self


class TransactionCompletedEvent(BaseModel):
    """transaction.completed: a checkout or charge was paid."""

    kind: Literal["transaction_completed"] = "transaction_completed"
    event_id: str
    event_type: str
    subscription_id: Optional[str] = None
    customer_id: Optional[str] = None
    custom_data: TransactionCustomData = Field(default_factory=TransactionCustomData)

    @property
    def tier(self) -> Optional[SubscriptionTier]:
        return SubscriptionTier.parse(self.custom_data.tier)


class SubscriptionChangedEvent(BaseModel):
    """subscription.*: the subscription's status or period changed."""

    kind: Literal["subscription_changed"] = "subscription_changed"
    event_id: str
    event_type: str
    subscription_id: Optional[str] = None
    store_id: Optional[str] = None
    status: Optional[str] = None
    current_period_end: Optional[datetime] = None


class UnhandledEvent(BaseModel):
    """Any other event type; acknowledged without action."""

    kind: Literal["unhandled"] = "unhandled"
    event_id: str
    event_type: str


PaddleEvent = Union[TransactionCompletedEvent, SubscriptionChangedEvent, UnhandledEvent]


class DecodedWebhook(BaseModel):
    """A decoded delivery plus the raw payload kept for the event log."""

    event: PaddleEvent
    payload: dict[str, Any]

    @property
    def candidate_store_id(self) -> Optional[str]:
        event = self.event
        if isinstance(event, TransactionCompletedEvent):
            return event.custom_data.store_id
        if isinstance(event, SubscriptionChangedEvent):
            return event.store_id
        return None


class WebhookAck(BaseModel):
    """Response body for an accepted delivery."""

    model_config = ConfigDict(extra="forbid")

    acknowledged: bool = True
    duplicate: Optional[bool] = None


# ============================================================================
# Decoding
# ============================================================================


def _string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _nested_id(data: dict[str, Any], key: str) -> Optional[str]:
    nested = data.get(key)
    return _string(nested.get("id")) if isinstance(nested, dict) else None


def decode_paddle_event(raw_body: bytes) -> DecodedWebhook:
    """
    Decode a Paddle delivery into a tagged event variant.

    Raises:
        MalformedWebhookError: Invalid JSON, missing event_id/event_type,
            an unknown purchase_type, or an invalid credits count
    """
    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedWebhookError("Invalid JSON payload") from e

    if not isinstance(payload, dict):
        raise MalformedWebhookError("Webhook payload must be a JSON object")

    event_id = _string(payload.get("event_id"))
    event_type = _string(payload.get("event_type"))
    if not event_id or not event_type:
        raise MalformedWebhookError("Missing event_id or event_type")

    data = payload.get("data") or {}
    if not isinstance(data, dict):
        raise MalformedWebhookError("Webhook data must be an object")
    custom_data = data.get("custom_data") or {}
    if not isinstance(custom_data, dict):
        raise MalformedWebhookError("custom_data must be an object")

    try:
        if event_type == "transaction.completed":
            event: PaddleEvent = TransactionCompletedEvent(
                event_id=event_id,
                event_type=event_type,
                subscription_id=_string(data.get("subscription_id")) or _nested_id(data, "subscription"),
                customer_id=_string(data.get("customer_id")) or _nested_id(data, "customer"),
                custom_data=TransactionCustomData.model_validate(custom_data),
            )
        elif event_type.startswith("subscription."):
            period = data.get("current_billing_period")
            event = SubscriptionChangedEvent(
                event_id=event_id,
                event_type=event_type,
                subscription_id=_string(data.get("id")) or _string(data.get("subscription_id")),
                store_id=_string(custom_data.get("store_id")),
                status=_string(data.get("status")) or SUBSCRIPTION_STATUS_BY_EVENT.get(event_type),
                current_period_end=period.get("ends_at") if isinstance(period, dict) else None,
            )
        else:
            event = UnhandledEvent(event_id=event_id, event_type=event_type)
    except PydanticValidationError as e:
        raise MalformedWebhookError(
            "Invalid webhook payload",
            errors=[err["msg"] for err in e.errors()],
        ) from e

    return DecodedWebhook(event=event, payload=payload)
