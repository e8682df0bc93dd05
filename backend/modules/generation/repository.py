"""
Session repository for database access.

Encapsulates all Supabase queries and data mapping for the
store_generation_sessions table.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError

from shared.repository import BaseRepository, is_unique_violation
from .exceptions import DuplicateSessionError, SessionStoreError
from .models import (
    ACTIVE_SESSION_STATUSES,
    GenerationSession,
    PaymentMethod,
    SessionStatus,
)

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "store_generation_sessions"

_ACTIVE_STATUS_VALUES = [s.value for s in ACTIVE_SESSION_STATUSES]


class SessionRepository(BaseRepository[GenerationSession]):
    """
    Repository for generation session data access.

    Note: This repository does NOT perform authorization checks beyond
    scoping reads by store id.
    """

    def _execute(self, operation: str, query: Any, session_id: Optional[str] = None) -> Any:
        try:
            return query.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Session {operation} failed (session {session_id}): {e}")
            raise SessionStoreError(operation, str(e), session_id) from e

    async def create(self, session: GenerationSession) -> GenerationSession:
        """Insert a session row with its pre-generated id."""
        row = {
            "id": session.id,
            "store_id": session.store_id,
            "status": session.status.value,
            "request_id": session.request_id,
            "payment_method": session.payment_method.value if session.payment_method else None,
            "shopper_email": session.shopper_email,
            "model_image_url": session.model_image_url,
            "outfit_image_url": session.outfit_image_url,
            "prompt_system": session.prompt,
            "credits_used": session.credits_used,
            "metadata": session.metadata,
        }
        try:
            result = self._db.table(SESSIONS_TABLE).insert(row).execute()
        except APIError as e:
            if is_unique_violation(e):
                raise DuplicateSessionError(session.request_id, session.id) from e
            logger.error(f"Session create failed (session {session.id}): {e}")
            raise SessionStoreError("create", str(e), session.id) from e
        except httpx.HTTPError as e:
            logger.error(f"Session create failed (session {session.id}): {e}")
            raise SessionStoreError("create", str(e), session.id) from e
        if not result.data:
            raise SessionStoreError("create", "no row returned", session.id)
        return self._map_to_session(result.data[0])

    async def find_by_request(self, store_id: str, request_id: str) -> Optional[GenerationSession]:
        """Get the session a store created for a request id."""
        query = (
            self._db.table(SESSIONS_TABLE)
            .select("*")
            .eq("store_id", store_id)
            .eq("request_id", request_id)
            .limit(1)
        )
        result = self._execute("request lookup", query)
        if not result.data:
            return None
        return self._map_to_session(result.data[0])

    async def get(self, session_id: str, store_id: str) -> Optional[GenerationSession]:
        """Get a session by id, scoped to the store."""
        query = (
            self._db.table(SESSIONS_TABLE)
            .select("*")
            .eq("id", session_id)
            .eq("store_id", store_id)
            .limit(1)
        )
        result = self._execute("read", query, session_id)
        if not result.data:
            return None
        return self._map_to_session(result.data[0])

    async def mark_failed(
        self,
        session_id: str,
        error_message: str,
        only_if_active: bool = False,
    ) -> bool:
        """Set status to failed; optionally only while queued or processing."""
        query = (
            self._db.table(SESSIONS_TABLE)
            .update({
                "status": SessionStatus.FAILED.value,
                "error_message": error_message,
                "completed_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", session_id)
        )
        if only_if_active:
            query = query.in_("status", _ACTIVE_STATUS_VALUES)

        result = self._execute("mark failed", query, session_id)
        return bool(result.data)

    async def merge_metadata(self, session_id: str, values: dict[str, Any]) -> None:
        """Read-merge-write the metadata map."""
        current = self._execute(
            "metadata read",
            self._db.table(SESSIONS_TABLE).select("metadata").eq("id", session_id).limit(1),
            session_id,
        )
        metadata = dict((current.data[0].get("metadata") or {}) if current.data else {})
        metadata.update(values)
        self._execute(
            "metadata update",
            self._db.table(SESSIONS_TABLE).update({"metadata": metadata}).eq("id", session_id),
            session_id,
        )

    async def find_stuck(self, older_than: datetime, limit: int = 100) -> list[GenerationSession]:
        """Sessions still queued or processing, created before older_than."""
        query = (
            self._db.table(SESSIONS_TABLE)
            .select("*")
            .in_("status", _ACTIVE_STATUS_VALUES)
            .lt("created_at", older_than.isoformat())
            .order("created_at")
            .limit(limit)
        )
        result = self._execute("stuck query", query)
        return [self._map_to_session(row) for row in result.data]

    # -------------------------------------------------------------------------
    # Mapping helpers
    # -------------------------------------------------------------------------

    def _map_to_session(self, data: dict[str, Any]) -> GenerationSession:
        """Map a database row to GenerationSession model."""
        payment_method = data.get("payment_method")
        return GenerationSession(
            id=data["id"],
            store_id=data["store_id"],
            status=SessionStatus(data.get("status", SessionStatus.QUEUED.value)),
            request_id=data.get("request_id") or "",
            payment_method=PaymentMethod(payment_method) if payment_method else None,
            shopper_email=data.get("shopper_email"),
            model_image_url=data.get("model_image_url"),
            outfit_image_url=data.get("outfit_image_url"),
            generated_image_url=data.get("generated_image_url"),
            prompt=data.get("prompt_system"),
            credits_used=data.get("credits_used") or 1,
            error_message=data.get("error_message"),
            metadata=data.get("metadata") or {},
            created_at=self._parse_datetime(data.get("created_at")),
            completed_at=self._parse_datetime(data.get("completed_at")),
        )

    def _parse_datetime(self, value: Any) -> Optional[datetime]:
        """Parse datetime from database value."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value
        return datetime.fromisoformat(value.replace("Z", "+00:00"))


class InMemorySessionRepository:
    """
    Session store with in-memory storage.

    For testing and development. Set fail_create=True to simulate a
    database outage on insert.
    """

    def __init__(self, fail_create: bool = False):
        self.sessions: dict[str, GenerationSession] = {}
        self.fail_create = fail_create

    async def create(self, session: GenerationSession) -> GenerationSession:
        if self.fail_create:
            raise SessionStoreError("create", "simulated failure", session.id)
        if self._find_by_request(session.store_id, session.request_id) is not None:
            raise DuplicateSessionError(session.request_id, session.id)
        stored = session.model_copy(
            update={"created_at": session.created_at or datetime.now(timezone.utc)}
        )
        self.sessions[stored.id] = stored
        return stored

    def _find_by_request(self, store_id: str, request_id: str) -> Optional[GenerationSession]:
        for session in self.sessions.values():
            if session.store_id == store_id and session.request_id == request_id:
                return session
        return None

    async def find_by_request(self, store_id: str, request_id: str) -> Optional[GenerationSession]:
        return self._find_by_request(store_id, request_id)

    async def get(self, session_id: str, store_id: str) -> Optional[GenerationSession]:
        session = self.sessions.get(session_id)
        if session is None or session.store_id != store_id:
            return None
        return session

    async def mark_failed(
        self,
        session_id: str,
        error_message: str,
        only_if_active: bool = False,
    ) -> bool:
        session = self.sessions.get(session_id)
        if session is None:
            return False
        if only_if_active and session.status not in ACTIVE_SESSION_STATUSES:
            return False
        self.sessions[session_id] = session.model_copy(update={
            "status": SessionStatus.FAILED,
            "error_message": error_message,
            "completed_at": datetime.now(timezone.utc),
        })
        return True

    async def merge_metadata(self, session_id: str, values: dict[str, Any]) -> None:
        session = self.sessions.get(session_id)
        if session is None:
            return
        self.sessions[session_id] = session.model_copy(
            update={"metadata": {**session.metadata, **values}}
        )

    async def find_stuck(self, older_than: datetime, limit: int = 100) -> list[GenerationSession]:
        stuck = [
            s for s in self.sessions.values()
            if s.status in ACTIVE_SESSION_STATUSES
            and s.created_at is not None
            and s.created_at < older_than
        ]
        stuck.sort(key=lambda s: s.created_at)
        return stuck[:limit]
