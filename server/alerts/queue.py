"""
Notification Queue

Pushes notification jobs onto a Redis list for the external sender, which
owns delivery and retries.

Usage:
    queue = RedisNotificationQueue(redis_url="redis://localhost:6379/0")
    await queue.connect()
    job_id = await queue.enqueue(payload)
    await queue.close()
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from news_collector.core.types import QueueError

from .payload import build_envelope

logger = logging.getLogger(__name__)


class RedisNotificationQueue:
    """LPUSHes JSON job envelopes onto one Redis list."""

    def __init__(self, redis_url: str, queue_name: str = "notification-send") -> None:
        self._redis_url = redis_url
        self._queue_name = queue_name
        self._redis: Redis | None = None

    @property
    def queue_name(self) -> str:
        return self._queue_name

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Open the Redis connection."""
        self._redis = Redis.from_url(self._redis_url, decode_responses=False)
        try:
            await self._redis.ping()
            logger.info("Notification queue connected to Redis at %s", self._redis_url)
        except RedisError as exc:
            raise QueueError(f"Cannot connect to Redis: {exc}") from exc

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Notification queue disconnected from Redis")

    async def __aenter__(self) -> RedisNotificationQueue:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    # ── Enqueue ───────────────────────────────────────────────────────────────

    async def enqueue(
        self,
        payload: dict[str, Any],
        options: Optional[dict[str, Any]] = None,
    ) -> str:
        """
        Push one job. Returns the job id.

        Raises:
            QueueError: not connected, payload not serializable, or Redis error.
        """
        if self._redis is None:
            raise QueueError("Notification queue is not connected, call connect() first")

        envelope = build_envelope(payload, options)
        try:
            raw = json.dumps(envelope, default=str)
        except (TypeError, ValueError) as exc:
            raise QueueError(f"Failed to serialize notification job: {exc}") from exc

        try:
            await self._redis.lpush(self._queue_name, raw)
        except RedisError as exc:
            raise QueueError(
                f"Redis push failed on '{self._queue_name}'", {"job_id": envelope["id"]}
            ) from exc

        logger.debug("Enqueued %s job %s", envelope["name"], envelope["id"])
        return envelope["id"]
