"""
Notification Job Payload

Wire shape of the jobs consumed by the notification sender. Keys are
camelCase because the consumer lives outside this service.

Envelope pushed onto the queue:
  {
    "id": "<uuid hex>",
    "name": "send-notification",
    "data": { ...job payload... },
    "opts": {"attempts": 3, "backoff": {"type": "exponential", "delay": 60000}},
    "enqueuedAt": "<iso timestamp>"
  }
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from news_collector.models.news import AlertRule, Article

JOB_NAME = "send-notification"

# 1 min, 2 min, 4 min
DEFAULT_JOB_OPTIONS: dict[str, Any] = {
    "attempts": 3,
    "backoff": {"type": "exponential", "delay": 60000},
}


def build_notification_job(alert: AlertRule, article: Article) -> dict[str, Any]:
    return {
        "alertId": alert.id,
        "userId": alert.user_id,
        "articleId": article.id,
        "articleTitle": article.title,
        "articleSummary": list(article.summary) if article.summary else None,
        "articleSource": article.source,
        "articleSentiment": article.sentiment,
        "impactLevel": article.impact_level.value,
        "notifyPush": alert.notify_push,
        "notifyEmail": alert.notify_email,
        "notifyDiscord": alert.notify_discord,
        "user": alert.user.to_dict(),
    }


def build_envelope(
    data: dict[str, Any],
    options: Optional[dict[str, Any]] = None,
    *,
    job_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    return {
        "id": job_id or uuid.uuid4().hex,
        "name": JOB_NAME,
        "data": data,
        "opts": options if options is not None else DEFAULT_JOB_OPTIONS,
        "enqueuedAt": (now or datetime.now(timezone.utc)).isoformat(),
    }
