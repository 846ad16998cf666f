"""
Event Topic and Channel Definitions

Internal bus topics (pipeline wiring) and live stream event types, plus the
Redis channel names the optional mirror publishes to.

Redis channel naming scheme:
  events:article    : new or re-published article summaries
  events:alert      : alert dispatches
  events:heartbeat  : periodic liveness ping
"""
from __future__ import annotations

# ── Internal bus topics ───────────────────────────────────────────────────────

ARTICLE_CREATED = "article.created"
ARTICLE_CLASSIFIED = "article.classified"

# ── Live stream event types ───────────────────────────────────────────────────

EVENT_ARTICLE = "article"
EVENT_ALERT = "alert"
EVENT_HEARTBEAT = "heartbeat"

EVENTS_PREFIX = "events:"


def event_channel(event_type: str) -> str:
    return f"{EVENTS_PREFIX}{event_type}"
