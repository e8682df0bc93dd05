"""
Generation module.

Pays for, records and queues try-on generations, and recovers sessions
the worker never finished.

Public API:
- IFulfillmentOrchestrator, ISessionStore, ITaskQueue: Interfaces
- CreateGenerationRequest, CreateGenerationResponse: Request models
- GenerationSession, GenerationTask: Session row and queue payload
- Generation exceptions: InsufficientCreditError, QueueFailureError, etc.
"""

from .interfaces import IFulfillmentOrchestrator, ISessionStore, ITaskQueue
from .models import (
    CreateGenerationRequest,
    CreateGenerationResponse,
    GenerationSession,
    GenerationStatusResponse,
    GenerationTask,
    PaymentMethod,
    RecoveryResult,
    SessionStatus,
)
from .exceptions import (
    BillingFailureError,
    DuplicateSessionError,
    InsufficientCreditError,
    InvalidImageUrlError,
    InvalidSessionIdError,
    QueueFailureError,
    SessionCreationError,
    SessionNotFoundError,
    SessionStoreError,
)

__all__ = [
    # Interfaces
    "IFulfillmentOrchestrator",
    "ISessionStore",
    "ITaskQueue",
    # Models
    "CreateGenerationRequest",
    "CreateGenerationResponse",
    "GenerationSession",
    "GenerationStatusResponse",
    "GenerationTask",
    "PaymentMethod",
    "RecoveryResult",
    "SessionStatus",
    # Exceptions
    "BillingFailureError",
    "DuplicateSessionError",
    "InsufficientCreditError",
    "InvalidImageUrlError",
    "InvalidSessionIdError",
    "QueueFailureError",
    "SessionCreationError",
    "SessionNotFoundError",
    "SessionStoreError",
]
