"""
Redis Event Sink

Mirrors live stream events onto Redis pub/sub channels (events:<type>) so
listeners in other processes can follow along.

Usage:
    sink = RedisEventSink(redis_url="redis://localhost:6379/0")
    await sink.connect()
    await sink.publish("article", {"id": "..."})
    await sink.close()
"""
from __future__ import annotations

import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .channels import event_channel
from .serializer import serialize

logger = logging.getLogger(__name__)


class SinkError(Exception):
    """Raised when the sink cannot connect or publish."""


class RedisEventSink:
    """Publishes JSON event envelopes to Redis pub/sub channels."""

    def __init__(self, redis_url: str) -> None:
        self._redis_url = redis_url
        self._redis: Redis | None = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Open the Redis connection."""
        self._redis = Redis.from_url(self._redis_url, decode_responses=False)
        try:
            await self._redis.ping()
            logger.info("RedisEventSink connected to Redis at %s", self._redis_url)
        except RedisError as exc:
            raise SinkError(f"Cannot connect to Redis: {exc}") from exc

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("RedisEventSink disconnected from Redis")

    async def __aenter__(self) -> RedisEventSink:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    # ── Publish ───────────────────────────────────────────────────────────────

    async def publish(self, event_type: str, data: dict[str, Any]) -> int:
        """
        Publish one event to events:<event_type>.

        Returns:
            Number of Redis subscribers that received the message.

        Raises:
            SinkError: If not connected or Redis returns an error.
            SerializationError: If data cannot be serialized.
        """
        if self._redis is None:
            raise SinkError("RedisEventSink is not connected, call connect() first")

        channel = event_channel(event_type)
        payload = serialize(channel, data)
        try:
            deliveries: int = await self._redis.publish(channel, payload)
        except RedisError as exc:
            raise SinkError(f"Redis publish failed on channel '{channel}'") from exc

        logger.debug("Published to '%s', reached %d subscriber(s)", channel, deliveries)
        return deliveries
