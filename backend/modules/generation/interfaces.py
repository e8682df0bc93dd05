"""
Generation module interfaces.

The orchestrator depends on these protocols for session persistence and
task publishing, so tests can run the whole saga with in-memory doubles.
"""

from datetime import datetime
from typing import Any, Protocol, Optional, runtime_checkable

from .models import (
    CreateGenerationRequest,
    CreateGenerationResponse,
    GenerationSession,
    GenerationStatusResponse,
    GenerationTask,
)


@runtime_checkable
class ISessionStore(Protocol):
    """Persistence for generation sessions."""

    async def create(self, session: GenerationSession) -> GenerationSession:
        """
        Insert a session row with its pre-generated id.

        Raises:
            DuplicateSessionError: If the store already has a session for
                the request id
            SessionStoreError: If the row could not be written
        """
        ...

    async def find_by_request(self, store_id: str, request_id: str) -> Optional[GenerationSession]:
        """Get the store's session created for a request id, or None."""
        ...

    async def get(self, session_id: str, store_id: str) -> Optional[GenerationSession]:
        """Get a session scoped to its store, or None."""
        ...

    async def mark_failed(
        self,
        session_id: str,
        error_message: str,
        only_if_active: bool = False,
    ) -> bool:
        """
        Set status to failed.

        With only_if_active, the update applies only while the session is
        queued or processing. Returns whether a row was updated.
        """
        ...

    async def merge_metadata(self, session_id: str, values: dict[str, Any]) -> None:
        """Merge keys into the session's metadata map."""
        ...

    async def find_stuck(self, older_than: datetime, limit: int = 100) -> list[GenerationSession]:
        """Sessions still queued or processing that were created before older_than."""
        ...


@runtime_checkable
class ITaskQueue(Protocol):
    """Publisher for the generation work queue."""

    async def publish(self, task: GenerationTask) -> None:
        """
        Enqueue a task.

        Raises:
            QueueFailureError: If the task was not accepted
        """
        ...


@runtime_checkable
class IFulfillmentOrchestrator(Protocol):
    """The generation request saga."""

    async def create_generation(
        self,
        store_id: str,
        request: CreateGenerationRequest,
        request_id: str,
        shopper_email: Optional[str] = None,
    ) -> CreateGenerationResponse:
        """
        Pay for, record and enqueue one generation.

        Raises:
            ValidationError: Invalid urls or shopper e-mail (nothing charged)
            StoreNotFoundError: Unknown store
            InsufficientCreditError: No credit and no overage
            BillingFailureError: Overage charge failed (nothing created)
            SessionCreationError: Session write failed (payment compensated)
            QueueFailureError: Publish failed (session failed, payment compensated)
            LedgerUnavailableError: Reservation outcome unknown
        """
        ...

    async def get_generation(self, store_id: str, session_id: str) -> GenerationStatusResponse:
        """Get a store-scoped session view."""
        ...
