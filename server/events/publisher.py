"""
Event Publisher

Fan-out of live stream events to in-process subscribers (an SSE or websocket
handler holds one Subscription per connected client). Delivery is
at-most-once: a subscriber whose queue is full misses the event, and the
publisher never waits on a slow consumer.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from .channels import EVENT_ALERT, EVENT_ARTICLE, EVENT_HEARTBEAT
from .redis_sink import SinkError
from .serializer import SerializationError

if TYPE_CHECKING:
    from news_collector.models.news import Article

    from .redis_sink import RedisEventSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamEvent:
    """One event as seen by live subscribers."""

    type: str
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class PublisherStats:
    """Event publisher statistics."""

    events_published: int = 0
    deliveries: int = 0
    dropped: int = 0
    sink_failures: int = 0


class Subscription:
    """
    A live listener's bounded inbox.

        sub = publisher.subscribe()
        async for event in sub:
            ...
        sub.close()
    """

    def __init__(self, publisher: EventPublisher, maxsize: int) -> None:
        self._publisher = publisher
        self._queue: asyncio.Queue[Optional[StreamEvent]] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, event: StreamEvent) -> bool:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    async def get(self) -> StreamEvent:
        """Next event; raises StopAsyncIteration once closed and drained."""
        event = await self._queue.get()
        if event is None:
            raise StopAsyncIteration
        return event

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self

    async def __anext__(self) -> StreamEvent:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        return await self.get()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._publisher._remove(self)
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass


class EventPublisher:
    """Broadcasts StreamEvents to current subscribers and an optional Redis mirror."""

    def __init__(
        self,
        *,
        queue_size: int = 100,
        sink: RedisEventSink | None = None,
    ) -> None:
        self._queue_size = queue_size
        self._sink = sink
        self._subscribers: set[Subscription] = set()
        self._stats = PublisherStats()

    @property
    def stats(self) -> PublisherStats:
        return self._stats

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        sub = Subscription(self, self._queue_size)
        self._subscribers.add(sub)
        logger.info("Stream client connected. Total: %d", len(self._subscribers))
        return sub

    def _remove(self, sub: Subscription) -> None:
        self._subscribers.discard(sub)
        logger.info("Stream client disconnected. Total: %d", len(self._subscribers))

    async def publish(self, event_type: str, payload: dict[str, Any]) -> int:
        """
        Broadcast one event. Returns the number of subscribers it reached.

        Subscribers that join after this call do not receive it. Mirror
        failures are logged and never reach the caller.
        """
        event = StreamEvent(type=event_type, data=payload)
        delivered = 0
        for sub in list(self._subscribers):
            if sub._offer(event):
                delivered += 1
            else:
                self._stats.dropped += 1
                logger.debug("Subscriber queue full, event dropped", extra={"type": event_type})

        self._stats.events_published += 1
        self._stats.deliveries += delivered

        if self._sink is not None:
            try:
                await self._sink.publish(event_type, event.to_dict())
            except (SinkError, SerializationError) as exc:
                self._stats.sink_failures += 1
                logger.warning("Event mirror failed: %s", exc, extra={"type": event_type})

        return delivered

    async def publish_article(self, article: Article) -> int:
        logger.info("Publishing article: %s", article.title[:80])
        return await self.publish(EVENT_ARTICLE, article.to_event_dict())

    async def publish_alert(
        self,
        *,
        alert_id: str,
        article_id: str,
        article_title: str,
        impact_level: str,
    ) -> int:
        logger.info("Publishing alert: %s", alert_id)
        return await self.publish(
            EVENT_ALERT,
            {
                "alertId": alert_id,
                "articleId": article_id,
                "articleTitle": article_title,
                "impactLevel": impact_level,
            },
        )

    async def send_heartbeat(self) -> int:
        return await self.publish(EVENT_HEARTBEAT, {"clientCount": len(self._subscribers)})

    def close_all(self) -> None:
        for sub in list(self._subscribers):
            sub.close()
