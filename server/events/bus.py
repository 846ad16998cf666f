"""
In-Memory Event Bus

Async pub/sub keyed by topic, used to wire pipeline stages together without
them importing each other:

    bus = EventBus()
    bus.subscribe(ARTICLE_CREATED, pool.on_article_created)
    await bus.publish(ARTICLE_CREATED, article)
"""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

Callback = Callable[[Any], Awaitable[None]]


class EventBus:
    """
    In-memory async pub/sub with per-topic subscriber lists.

    - subscribe/unsubscribe are O(1) dict ops.
    - publish runs every subscriber of the topic concurrently and waits for
      all of them; a subscriber that raises is logged and does not affect
      the others or the publisher.
    """

    __slots__ = ("_subs",)

    def __init__(self) -> None:
        self._subs: dict[str, list[Callback]] = defaultdict(list)

    def subscribe(self, topic: str, cb: Callback) -> None:
        self._subs[topic].append(cb)

    def unsubscribe(self, topic: str, cb: Callback) -> None:
        callbacks = self._subs.get(topic)
        if not callbacks or cb not in callbacks:
            return
        callbacks.remove(cb)
        if not callbacks:
            del self._subs[topic]

    async def publish(self, topic: str, payload: Any) -> int:
        """Deliver payload to all subscribers of topic. Returns how many ran."""
        callbacks = list(self._subs.get(topic, ()))
        if not callbacks:
            return 0

        results = await asyncio.gather(
            *(cb(payload) for cb in callbacks), return_exceptions=True
        )
        for cb, result in zip(callbacks, results):
            if isinstance(result, Exception):
                logger.error(
                    "Event subscriber failed: %s",
                    result,
                    extra={"topic": topic, "subscriber": getattr(cb, "__qualname__", repr(cb))},
                )
        return len(callbacks)

    @property
    def topic_count(self) -> int:
        return len(self._subs)

    @property
    def subscriber_count(self) -> int:
        return sum(len(cbs) for cbs in self._subs.values())
