"""
News Collector

One collection cycle: every configured feed in order, with a pause between
feeds, then (when enabled) the Truth Social account. Each relevant, unseen
item becomes an article and is announced on the event bus and the live
stream. A failing source is logged and skipped; the cycle always finishes.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Sequence

from events.channels import ARTICLE_CREATED
from news_collector.content_filter import is_relevant_item
from news_collector.core.types import DuplicateArticleError, FetchError, PersistenceError
from news_collector.dedup import Deduplicator, fingerprint_text, fingerprint_url
from news_collector.fetchers.truth_social import (
    SOURCE_NAME as SOCIAL_SOURCE,
    social_impact_level,
    social_title,
)
from news_collector.models.news import Article, Bias, FeedItem, FeedSource, NewArticle, SocialPost

if TYPE_CHECKING:
    from events.bus import EventBus
    from events.publisher import EventPublisher
    from news_collector.fetchers import RSSFetcher, TruthSocialFetcher
    from news_collector.stores import ArticleStore

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class CollectionResult:
    """Counters for one collection cycle."""

    feeds_ok: int = 0
    feeds_failed: int = 0
    items_seen: int = 0
    items_filtered: int = 0
    duplicates: int = 0
    created: int = 0
    errors: int = 0
    elapsed_s: float = 0.0

    def merge(self, other: CollectionResult) -> None:
        self.feeds_ok += other.feeds_ok
        self.feeds_failed += other.feeds_failed
        self.items_seen += other.items_seen
        self.items_filtered += other.items_filtered
        self.duplicates += other.duplicates
        self.created += other.created
        self.errors += other.errors


class NewsCollector:
    """
    Runs collection cycles against the article store.

    Concurrent cycles are allowed; the fingerprint pre-check plus the store's
    unique constraints keep them idempotent.
    """

    def __init__(
        self,
        *,
        store: ArticleStore,
        fetcher: RSSFetcher,
        bus: EventBus,
        feeds: Sequence[FeedSource],
        publisher: Optional[EventPublisher] = None,
        social_fetcher: Optional[TruthSocialFetcher] = None,
        feed_delay_s: float = 2.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._bus = bus
        self._feeds = list(feeds)
        self._publisher = publisher
        self._social_fetcher = social_fetcher
        self._feed_delay_s = feed_delay_s
        self._sleep = sleep
        self._dedup = Deduplicator(store)
        self._cycles = 0

    @property
    def cycles(self) -> int:
        return self._cycles

    async def collect_all(self) -> CollectionResult:
        """Run one full cycle over every source."""
        t0 = time.monotonic()
        logger.info("Starting news collection (%d feeds)", len(self._feeds))
        result = CollectionResult()

        for index, feed in enumerate(self._feeds):
            if index > 0 and self._feed_delay_s > 0:
                await self._sleep(self._feed_delay_s)
            result.merge(await self.collect_feed(feed))

        if self._social_fetcher is not None:
            result.merge(await self.collect_social())

        result.elapsed_s = time.monotonic() - t0
        self._cycles += 1
        logger.info(
            "Collected %d new articles", result.created,
            extra={
                "feeds_ok": result.feeds_ok,
                "feeds_failed": result.feeds_failed,
                "duplicates": result.duplicates,
                "filtered": result.items_filtered,
                "elapsed_s": round(result.elapsed_s, 2),
            },
        )
        return result

    async def collect_feed(self, feed: FeedSource) -> CollectionResult:
        result = CollectionResult()
        logger.info("Fetching %s...", feed.source)
        try:
            items = await self._fetcher.fetch(feed)
        except FetchError as exc:
            result.feeds_failed += 1
            logger.error("Error fetching %s: %s", feed.source, exc)
            return result

        result.feeds_ok += 1
        for item in items:
            result.items_seen += 1
            if not is_relevant_item(item):
                result.items_filtered += 1
                continue
            await self._ingest(self._article_from_item(item, feed), result)

        logger.info("Found %d new Trump-related articles from %s", result.created, feed.source)
        return result

    async def collect_social(self) -> CollectionResult:
        """Ingest the account's latest posts. The keyword filter does not apply."""
        result = CollectionResult()
        if self._social_fetcher is None:
            return result

        try:
            posts = await self._social_fetcher.fetch_posts()
        except FetchError as exc:
            result.feeds_failed += 1
            logger.error("Error fetching %s: %s", SOCIAL_SOURCE, exc)
            return result

        result.feeds_ok += 1
        for post in posts:
            result.items_seen += 1
            await self._ingest(self._article_from_post(post), result)

        logger.info("Saved %d new %s posts", result.created, SOCIAL_SOURCE)
        return result

    # ── Internals ─────────────────────────────────────────────────────────────

    @staticmethod
    def _article_from_item(item: FeedItem, feed: FeedSource) -> NewArticle:
        return NewArticle(
            title=item.title,
            url=item.link,
            fingerprint=fingerprint_url(item.link),
            source=feed.source,
            content=item.content or item.snippet,
            published_at=item.published_at,
            bias=feed.bias,
            image_url=item.image_url,
        )

    @staticmethod
    def _article_from_post(post: SocialPost) -> NewArticle:
        return NewArticle(
            title=social_title(post.text),
            url=post.url,
            fingerprint=fingerprint_text(post.text),
            source=SOCIAL_SOURCE,
            content=post.text,
            published_at=post.published_at,
            bias=Bias.RIGHT,
            impact_level=social_impact_level(post),
            image_url=post.image_url,
        )

    async def _ingest(self, new: NewArticle, result: CollectionResult) -> Optional[Article]:
        if await self._dedup.is_duplicate(new.fingerprint):
            result.duplicates += 1
            return None

        try:
            article = await self._store.create_article(new)
        except DuplicateArticleError:
            result.duplicates += 1
            return None
        except PersistenceError as exc:
            result.errors += 1
            logger.error("Failed to save article: %s", exc)
            return None

        result.created += 1
        await self._announce(article)
        return article

    async def _announce(self, article: Article) -> None:
        if self._publisher is not None:
            await self._publisher.publish_article(article)
        await self._bus.publish(ARTICLE_CREATED, article)
