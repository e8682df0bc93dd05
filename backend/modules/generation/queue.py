"""
Generation work queue publishers.

Tasks are JSON objects pushed with LPUSH onto a Redis list; the worker
pops from the other end, so the list is FIFO.
"""

import logging
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .exceptions import QueueFailureError
from .models import GenerationTask

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_KEY = "wearon:tasks:generation"


class RedisTaskQueue:
    """
    Task queue backed by a Redis list.

    The Redis client is injected; a None client means the queue is not
    configured and every publish fails.
    """

    def __init__(self, redis: Optional[Redis], queue_key: str = DEFAULT_QUEUE_KEY):
        self._redis = redis
        self._queue_key = queue_key

    async def publish(self, task: GenerationTask) -> None:
        """LPUSH the task onto the queue."""
        if self._redis is None:
            raise QueueFailureError("Generation queue is not configured")

        try:
            await self._redis.lpush(self._queue_key, task.model_dump_json())
        except RedisError as e:
            logger.error(f"Queue push failed for session {task.session_id}: {e}")
            raise QueueFailureError() from e

        logger.info(f"Queued task {task.task_id} for session {task.session_id}")

    async def ping(self) -> bool:
        """Check that Redis answers; used by the readiness check."""
        if self._redis is None:
            return False
        try:
            return bool(await self._redis.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False


class InMemoryTaskQueue:
    """
    Task queue with in-memory storage.

    For testing and development. Set fail=True to simulate an outage.
    """

    def __init__(self, fail: bool = False):
        self.tasks: list[GenerationTask] = []
        self.fail = fail

    async def publish(self, task: GenerationTask) -> None:
        if self.fail:
            raise QueueFailureError()
        self.tasks.append(task)

    async def ping(self) -> bool:
        return not self.fail
