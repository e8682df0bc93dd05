"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from shared.config import Settings, get_settings
from modules.generation.queue import RedisTaskQueue

from ..dependencies import get_task_queue

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    database: str
    queue: str


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=settings.app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    response: Response,
    settings: Settings = Depends(get_settings),
    queue: RedisTaskQueue = Depends(get_task_queue),
) -> ReadinessResponse:
    """
    Readiness check endpoint.

    Returns 503 while the database is unconfigured or Redis is unreachable.
    """
    database_ok = bool(settings.supabase_url and settings.supabase_service_role_key)
    queue_ok = await queue.ping()

    if not (database_ok and queue_ok):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status="ready" if database_ok and queue_ok else "not_ready",
        database="configured" if database_ok else "not_configured",
        queue="connected" if queue_ok else "unavailable",
    )
