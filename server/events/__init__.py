"""
events: pipeline wiring and live event fan-out.

Public API:
    EventBus       : in-process topic bus between pipeline stages
    EventPublisher : broadcast StreamEvents to live subscribers
    Subscription   : one subscriber's bounded inbox
    RedisEventSink : optional mirror to Redis pub/sub
"""
from .bus import EventBus
from .channels import (
    ARTICLE_CLASSIFIED,
    ARTICLE_CREATED,
    EVENT_ALERT,
    EVENT_ARTICLE,
    EVENT_HEARTBEAT,
    event_channel,
)
from .publisher import EventPublisher, PublisherStats, StreamEvent, Subscription
from .redis_sink import RedisEventSink, SinkError
from .serializer import SerializationError, deserialize, serialize

__all__ = [
    "ARTICLE_CLASSIFIED",
    "ARTICLE_CREATED",
    "EVENT_ALERT",
    "EVENT_ARTICLE",
    "EVENT_HEARTBEAT",
    "EventBus",
    "EventPublisher",
    "PublisherStats",
    "RedisEventSink",
    "SerializationError",
    "SinkError",
    "StreamEvent",
    "Subscription",
    "deserialize",
    "event_channel",
    "serialize",
]
