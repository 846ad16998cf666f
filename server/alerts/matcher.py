"""
Alert Matcher

Evaluates every active alert rule against a freshly classified article and
enqueues one notification job per match. A dispatch record is claimed
before the job is pushed, which makes delivery at-most-once per
(alert, article) no matter how often the article is replayed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

from news_collector.core.types import NewsCollectorError, QueueError
from news_collector.models.news import AlertRule, Article, impact_priority

from .payload import DEFAULT_JOB_OPTIONS, build_notification_job

if TYPE_CHECKING:
    from events.publisher import EventPublisher
    from news_collector.stores import AlertStore

logger = logging.getLogger(__name__)


class NotificationQueue(Protocol):
    async def enqueue(
        self,
        payload: dict[str, Any],
        options: Optional[dict[str, Any]] = None,
    ) -> str: ...


def matches(alert: AlertRule, article: Article) -> bool:
    """Impact at or above the rule's minimum and keyword in title or content."""
    if impact_priority(article.impact_level) < impact_priority(alert.min_impact):
        return False
    keyword = alert.keyword.lower()
    return keyword in article.title.lower() or keyword in article.content.lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MatchResult:
    """Outcome of evaluating one article."""

    rules_checked: int = 0
    matched: int = 0
    enqueued: int = 0
    already_sent: int = 0
    failed: int = 0
    skipped_stale: bool = False


class AlertMatcher:
    """Rule evaluation plus at-most-once job dispatch."""

    def __init__(
        self,
        *,
        store: AlertStore,
        queue: NotificationQueue,
        publisher: Optional[EventPublisher] = None,
        max_article_age_minutes: int = 60,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._queue = queue
        self._publisher = publisher
        self._max_age = (
            timedelta(minutes=max_article_age_minutes) if max_article_age_minutes > 0 else None
        )
        self._clock = clock

    async def on_article_classified(self, article: Article) -> None:
        """Event bus handler for article.classified."""
        await self.process(article)

    async def process(self, article: Article) -> MatchResult:
        result = MatchResult()

        if self._max_age is not None and article.published_at < self._clock() - self._max_age:
            result.skipped_stale = True
            logger.info(
                "Skipping notification for old article: %s (published: %s)",
                article.id,
                article.published_at.isoformat(),
            )
            return result

        # Rules are re-read every time; edits take effect on the next article.
        alerts = await self._store.list_active_alerts()
        for alert in alerts:
            result.rules_checked += 1
            if not matches(alert, article):
                continue
            result.matched += 1
            try:
                await self._dispatch(alert, article, result)
            except NewsCollectorError as e:
                result.failed += 1
                logger.error("Dispatch failed for alert %s on article %s: %s", alert.id, article.id, e)

        if result.matched:
            logger.info(
                "Alerts matched for article %s", article.id,
                extra={
                    "matched": result.matched,
                    "enqueued": result.enqueued,
                    "already_sent": result.already_sent,
                    "failed": result.failed,
                },
            )
        return result

    async def _dispatch(self, alert: AlertRule, article: Article, result: MatchResult) -> None:
        claimed = await self._store.claim_dispatch(alert.id, article.id, alert.channels)
        if not claimed:
            result.already_sent += 1
            return

        try:
            await self._queue.enqueue(build_notification_job(alert, article), DEFAULT_JOB_OPTIONS)
        except QueueError as e:
            result.failed += 1
            logger.error("Failed to enqueue notification for alert %s: %s", alert.id, e)
            try:
                await self._store.release_dispatch(alert.id, article.id)
            except NewsCollectorError as release_error:
                logger.error("Could not release claim for alert %s: %s", alert.id, release_error)
            return

        result.enqueued += 1
        if self._publisher is not None:
            await self._publisher.publish_alert(
                alert_id=alert.id,
                article_id=article.id,
                article_title=article.title,
                impact_level=article.impact_level.value,
            )
