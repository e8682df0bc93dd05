"""
Base repository class for database access.

Provides a common abstraction layer for all repositories, encapsulating
Supabase client access and providing shared utilities for data operations.
"""

from typing import TypeVar, Generic
from supabase import Client


T = TypeVar("T")

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: Exception) -> bool:
    """
    Check whether a PostgREST error was caused by a unique constraint.

    postgrest.exceptions.APIError exposes the SQLSTATE as ``code``.
    """
    return getattr(error, "code", None) == UNIQUE_VIOLATION


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - Generic type parameter for model type hints

    Subclasses should implement domain-specific data access methods
    and handle dict-to-Pydantic model mapping internally.

    Example:
        class SessionRepository(BaseRepository[GenerationSession]):
            def get(self, session_id: str) -> Optional[GenerationSession]:
                result = self._db.table("store_generation_sessions").select("*").eq("id", session_id).execute()
                if not result.data:
                    return None
                return self._map_to_session(result.data[0])
    """

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db
