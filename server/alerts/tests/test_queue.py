"""
Tests for alerts.queue and alerts.payload

All Redis I/O is replaced with AsyncMock; no live Redis required.
"""
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import RedisError

from alerts.payload import DEFAULT_JOB_OPTIONS, JOB_NAME, build_envelope, build_notification_job
from alerts.queue import RedisNotificationQueue
from news_collector.core.types import QueueError
from news_collector.models import AlertRule, Article, ImpactLevel, UserContact


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def mock_redis():
    """
    Patch alerts.queue.Redis so that Redis.from_url() returns an AsyncMock
    instance. Yields the mock Redis instance.
    """
    with patch("alerts.queue.Redis") as mock_cls:
        instance = AsyncMock()
        instance.ping = AsyncMock(return_value=True)
        instance.lpush = AsyncMock(return_value=1)
        mock_cls.from_url.return_value = instance
        yield instance


@pytest.fixture
async def connected_queue(mock_redis):
    queue = RedisNotificationQueue(redis_url="redis://localhost:6379/0")
    await queue.connect()
    yield queue
    await queue.close()


@pytest.fixture
def rule():
    return AlertRule(
        id="alert-1",
        user_id="user-1",
        keyword="tariff",
        min_impact=ImpactLevel.B,
        notify_push=True,
        notify_email=False,
        notify_discord=True,
        user=UserContact(id="user-1", email="u@example.com", discord_webhook="https://discord/hook"),
    )


@pytest.fixture
def article():
    return Article(
        id="art-1",
        title="Trump tariff shock",
        url="https://example.com/a",
        source="CNN",
        content="...",
        published_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
        impact_level=ImpactLevel.S,
        sentiment=-0.7,
        summary=("x", "y", "z"),
    )


# ── payload ──────────────────────────────────────────────────────────────────

def test_build_notification_job_shape(rule, article):
    job = build_notification_job(rule, article)

    assert job == {
        "alertId": "alert-1",
        "userId": "user-1",
        "articleId": "art-1",
        "articleTitle": "Trump tariff shock",
        "articleSummary": ["x", "y", "z"],
        "articleSource": "CNN",
        "articleSentiment": -0.7,
        "impactLevel": "S",
        "notifyPush": True,
        "notifyEmail": False,
        "notifyDiscord": True,
        "user": {
            "id": "user-1",
            "email": "u@example.com",
            "pushSubscription": None,
            "discordWebhook": "https://discord/hook",
        },
    }


def test_build_envelope_defaults():
    now = datetime(2025, 3, 1, 12, tzinfo=timezone.utc)
    envelope = build_envelope({"k": 1}, job_id="j1", now=now)

    assert envelope == {
        "id": "j1",
        "name": JOB_NAME,
        "data": {"k": 1},
        "opts": DEFAULT_JOB_OPTIONS,
        "enqueuedAt": "2025-03-01T12:00:00+00:00",
    }


def test_default_job_options_retry_policy():
    assert DEFAULT_JOB_OPTIONS["attempts"] == 3
    assert DEFAULT_JOB_OPTIONS["backoff"] == {"type": "exponential", "delay": 60000}


# ── connect() ────────────────────────────────────────────────────────────────

async def test_connect_ping_failure_raises_queue_error(mock_redis):
    mock_redis.ping.side_effect = RedisError("connection refused")

    queue = RedisNotificationQueue(redis_url="redis://localhost:6379/0")
    with pytest.raises(QueueError, match="Cannot connect"):
        await queue.connect()


# ── enqueue() ────────────────────────────────────────────────────────────────

async def test_enqueue_before_connect_raises():
    queue = RedisNotificationQueue(redis_url="redis://localhost:6379/0")
    with pytest.raises(QueueError, match="not connected"):
        await queue.enqueue({"k": 1})


async def test_enqueue_lpushes_json_envelope(connected_queue, mock_redis):
    job_id = await connected_queue.enqueue({"alertId": "a1"}, DEFAULT_JOB_OPTIONS)

    mock_redis.lpush.assert_called_once()
    name, raw = mock_redis.lpush.call_args.args
    assert name == "notification-send"
    envelope = json.loads(raw)
    assert envelope["id"] == job_id
    assert envelope["name"] == JOB_NAME
    assert envelope["data"] == {"alertId": "a1"}
    assert envelope["opts"] == DEFAULT_JOB_OPTIONS


async def test_enqueue_uses_custom_queue_name(mock_redis):
    async with RedisNotificationQueue("redis://localhost:6379/0", queue_name="jobs") as queue:
        await queue.enqueue({})
    assert mock_redis.lpush.call_args.args[0] == "jobs"
    mock_redis.aclose.assert_awaited_once()


async def test_enqueue_redis_error_raises_queue_error(connected_queue, mock_redis):
    mock_redis.lpush.side_effect = RedisError("READONLY")

    with pytest.raises(QueueError, match="push failed"):
        await connected_queue.enqueue({"k": 1})


async def test_enqueue_serializes_datetimes(connected_queue, mock_redis):
    await connected_queue.enqueue({"at": datetime(2025, 1, 1, tzinfo=timezone.utc)})

    _, raw = mock_redis.lpush.call_args.args
    assert json.loads(raw)["data"]["at"] == "2025-01-01 00:00:00+00:00"
