"""
Generation module data models.

A generation request becomes one session row and one queued task. The
external worker moves the session through processing to completed.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

MAX_IMAGE_URLS = 10
TASK_PAYLOAD_VERSION = 1


def store_upload_path(store_id: str) -> str:
    """Storage prefix under which a store's uploads live."""
    return f"stores/{store_id}/uploads"


DEFAULT_TRYON_PROMPT = """Virtual try-on: Using the provided images:
- First image: Model (person to dress)
- Second image (if provided): Outfit/clothes
- Additional images (if provided): Accessories

Generate a single portrait photo of the model wearing all provided items.

Requirements:
- Preserve the model's exact face, skin tone, hair, body
- Natural clothing fit with realistic draping
- Place accessories correctly (watch on wrist, necklace on neck, hat on head)
- Professional fashion photography, natural lighting
- Output ONE portrait (3:4 ratio)"""


class SessionStatus(str, Enum):
    """Status of a generation session."""

    QUEUED = "queued"
    PROCESSING = "processing"  # Set by the worker
    COMPLETED = "completed"    # Set by the worker
    FAILED = "failed"


# Sessions in these states still hold a payment that may need compensating
ACTIVE_SESSION_STATUSES = (SessionStatus.QUEUED, SessionStatus.PROCESSING)


class PaymentMethod(str, Enum):
    """Instrument that paid for a generation."""

    CREDIT = "credit"                  # Store credit balance
    SHOPPER_CREDIT = "shopper_credit"  # Shopper credit balance (resell mode)
    OVERAGE = "overage"                # Paddle overage charge


# ============================================================================
# Request/Response Models
# ============================================================================


class CreateGenerationRequest(BaseModel):
    """Request body for creating a generation."""

    image_urls: list[str] = Field(
        ...,
        min_length=1,
        max_length=MAX_IMAGE_URLS,
        description="Model image first, then outfit and accessories",
    )
    prompt: Optional[str] = Field(None, description="Custom prompt; blank uses the default")

    @field_validator("image_urls")
    @classmethod
    def urls_not_blank(cls, v: list[str]) -> list[str]:
        if any(not url.strip() for url in v):
            raise ValueError("image_urls entries must be non-empty strings")
        return v

    def resolved_prompt(self) -> str:
        """The prompt to send to the worker."""
        if self.prompt and self.prompt.strip():
            return self.prompt.strip()
        return DEFAULT_TRYON_PROMPT


class CreateGenerationResponse(BaseModel):
    """Response for an accepted generation."""

    session_id: str
    status: SessionStatus = SessionStatus.QUEUED


class GenerationSession(BaseModel):
    """A generation session row."""

    id: str = Field(..., description="Session ID (UUID)")
    store_id: str = Field(..., description="Owning store")
    status: SessionStatus = Field(default=SessionStatus.QUEUED)
    request_id: str = Field(..., description="Idempotency token used for payment")
    payment_method: Optional[PaymentMethod] = Field(None, description="Instrument that paid")
    shopper_email: Optional[str] = Field(None, description="Shopper, for resell mode")
    model_image_url: Optional[str] = None
    outfit_image_url: Optional[str] = None
    generated_image_url: Optional[str] = None
    prompt: Optional[str] = None
    credits_used: int = 1
    error_message: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class GenerationStatusResponse(BaseModel):
    """Store-scoped view of a session."""

    session_id: str
    status: SessionStatus
    model_image_url: Optional[str] = None
    outfit_image_url: Optional[str] = None
    generated_image_url: Optional[str] = None
    error_message: Optional[str] = None
    credits_used: int
    request_id: str
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_session(cls, session: GenerationSession) -> "GenerationStatusResponse":
        return cls(
            session_id=session.id,
            status=session.status,
            model_image_url=session.model_image_url,
            outfit_image_url=session.outfit_image_url,
            generated_image_url=session.generated_image_url,
            error_message=session.error_message,
            credits_used=session.credits_used,
            request_id=session.request_id,
            created_at=session.created_at,
            completed_at=session.completed_at,
        )


# ============================================================================
# Queue Contract
# ============================================================================


class GenerationTask(BaseModel):
    """
    Work item consumed by the generation worker.

    Serialized as snake_case JSON and pushed with LPUSH.
    """

    task_id: str
    channel: str = "b2b"
    store_id: str
    session_id: str
    image_urls: list[str]
    prompt: str
    request_id: str
    version: int = TASK_PAYLOAD_VERSION
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


# ============================================================================
# Recovery
# ============================================================================


class RecoveryResult(BaseModel):
    """Counts from one stuck-session recovery run."""

    examined: int = 0
    failed: int = 0
    refunded: int = 0
    reversed: int = 0
    skipped: int = 0
