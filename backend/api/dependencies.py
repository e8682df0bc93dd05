"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

External clients (Supabase, Redis, the Paddle HTTP client) are constructed
here explicitly and passed into the components that use them. The
application lifespan owns the container and closes it on shutdown.
"""

import logging
from typing import TYPE_CHECKING, Optional

from fastapi import Request

from shared.config import Settings, get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    import httpx
    from redis.asyncio import Redis
    from supabase import Client
    from modules.billing.repository import AccountRepository
    from modules.billing.service import PaddleOverageBiller
    from modules.credits.interfaces import ICreditLedger
    from modules.generation.queue import RedisTaskQueue
    from modules.generation.recovery import StuckSessionRecovery
    from modules.generation.repository import SessionRepository
    from modules.generation.service import FulfillmentOrchestrator
    from modules.webhooks.interfaces import IWebhookProcessor

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access and cached
    as singletons within the container.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self._supabase: "Client | None" = None
        self._redis: "Redis | None" = None
        self._http_client: "httpx.AsyncClient | None" = None
        self._ledger: "ICreditLedger | None" = None
        self._accounts: "AccountRepository | None" = None
        self._biller: "PaddleOverageBiller | None" = None
        self._sessions: "SessionRepository | None" = None
        self._queue: "RedisTaskQueue | None" = None
        self._orchestrator: "FulfillmentOrchestrator | None" = None
        self._webhooks: "IWebhookProcessor | None" = None
        self._recovery: "StuckSessionRecovery | None" = None

    # -------------------------------------------------------------------------
    # Clients
    # -------------------------------------------------------------------------

    @property
    def supabase(self) -> "Client":
        """Get the Supabase service-role client."""
        if self._supabase is None:
            from shared.database import create_supabase_client
            self._supabase = create_supabase_client(self.settings)
        return self._supabase

    @property
    def redis(self) -> "Redis | None":
        """Get the Redis client, or None when REDIS_URL is unset."""
        if self._redis is None and self.settings.redis_url:
            from redis.asyncio import Redis
            self._redis = Redis.from_url(self.settings.redis_url)
        return self._redis

    @property
    def http_client(self) -> "httpx.AsyncClient":
        """Get the HTTP client used for Paddle calls."""
        if self._http_client is None:
            import httpx
            self._http_client = httpx.AsyncClient(
                base_url=self.settings.paddle_api_base_url,
                timeout=self.settings.paddle_timeout_seconds,
            )
        return self._http_client

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    @property
    def ledger(self) -> "ICreditLedger":
        """Get the credit ledger instance."""
        if self._ledger is None:
            from modules.credits.service import SupabaseCreditLedger
            self._ledger = SupabaseCreditLedger(self.supabase)
        return self._ledger

    @property
    def accounts(self) -> "AccountRepository":
        """Get the account repository instance."""
        if self._accounts is None:
            from modules.billing.repository import AccountRepository
            self._accounts = AccountRepository(self.supabase)
        return self._accounts

    @property
    def biller(self) -> "PaddleOverageBiller":
        """Get the overage biller instance."""
        if self._biller is None:
            from modules.billing.service import PaddleOverageBiller
            self._biller = PaddleOverageBiller(self.settings, self.http_client)
        return self._biller

    @property
    def sessions(self) -> "SessionRepository":
        """Get the session repository instance."""
        if self._sessions is None:
            from modules.generation.repository import SessionRepository
            self._sessions = SessionRepository(self.supabase)
        return self._sessions

    @property
    def queue(self) -> "RedisTaskQueue":
        """Get the task queue instance."""
        if self._queue is None:
            from modules.generation.queue import RedisTaskQueue
            self._queue = RedisTaskQueue(self.redis, self.settings.redis_queue_key)
        return self._queue

    @property
    def orchestrator(self) -> "FulfillmentOrchestrator":
        """Get the fulfillment orchestrator instance."""
        if self._orchestrator is None:
            from modules.generation.service import FulfillmentOrchestrator
            self._orchestrator = FulfillmentOrchestrator(
                ledger=self.ledger,
                profiles=self.accounts,
                biller=self.biller,
                sessions=self.sessions,
                queue=self.queue,
                queue_timeout_seconds=self.settings.queue_publish_timeout_seconds,
            )
        return self._orchestrator

    @property
    def webhooks(self) -> "IWebhookProcessor":
        """Get the webhook processor instance."""
        if self._webhooks is None:
            from modules.webhooks.repository import WebhookEventRepository
            from modules.webhooks.service import WebhookProcessor
            self._webhooks = WebhookProcessor(
                events=WebhookEventRepository(self.supabase),
                ledger=self.ledger,
                accounts=self.accounts,
                webhook_secret=self.settings.paddle_webhook_secret,
                max_age_seconds=self.settings.paddle_signature_max_age_seconds,
            )
        return self._webhooks

    @property
    def recovery(self) -> "StuckSessionRecovery":
        """Get the stuck session recovery instance."""
        if self._recovery is None:
            from modules.generation.recovery import StuckSessionRecovery
            self._recovery = StuckSessionRecovery(
                sessions=self.sessions,
                ledger=self.ledger,
                biller=self.biller,
                threshold_minutes=self.settings.stuck_session_threshold_minutes,
            )
        return self._recovery

    async def aclose(self) -> None:
        """Wait for background audit work, then release external clients."""
        if self._orchestrator is not None:
            await self._orchestrator.drain()
        if self._http_client is not None:
            await self._http_client.aclose()
        if self._redis is not None:
            await self._redis.aclose()
        logger.info("Service container closed")


def get_container(request: Request) -> ServiceContainer:
    """Get the container created by the application lifespan."""
    return request.app.state.container


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_credit_ledger(request: Request) -> "ICreditLedger":
    """FastAPI dependency for the credit ledger."""
    return get_container(request).ledger


def get_orchestrator(request: Request) -> "FulfillmentOrchestrator":
    """FastAPI dependency for the fulfillment orchestrator."""
    return get_container(request).orchestrator


def get_webhook_processor(request: Request) -> "IWebhookProcessor":
    """FastAPI dependency for the webhook processor."""
    return get_container(request).webhooks


def get_stuck_session_recovery(request: Request) -> "StuckSessionRecovery":
    """FastAPI dependency for stuck session recovery."""
    return get_container(request).recovery


def get_task_queue(request: Request) -> "RedisTaskQueue":
    """FastAPI dependency for the task queue."""
    return get_container(request).queue
