"""
news collector server: top-level orchestrator

Runs all services in a single async event loop:
  - collector: RSS feeds (+ Truth Social) → filter → dedup → article store
  - analysis: bounded worker pool → Groq classifier → article.classified
  - alerts: rule matching → dispatch claim → notification queue
  - storylines: hourly clustering of recent unclustered articles
  - events: live stream publisher (+ optional Redis mirror)

Usage:
    cd server
    python main.py                 # scheduled: collect every 5 min, cluster hourly
    python main.py --once          # one collection cycle, wait for analysis, exit
    python main.py --backfill      # re-queue articles that were never analysed
    python main.py --sources CNN,BBC --no-social
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from contextlib import AsyncExitStack
from typing import Awaitable, Callable

from dotenv import load_dotenv

load_dotenv(".env")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s - %(message)s",
)
logger = logging.getLogger("news_collector")


async def _every(
    interval_s: float,
    job: Callable[[], Awaitable[object]],
    name: str,
    shutdown: asyncio.Event,
) -> None:
    """Run job now and then every interval_s until shutdown. A failed run is logged."""
    while not shutdown.is_set():
        try:
            await job()
        except Exception as e:
            logger.error(f"{name} cycle failed: {e}")
        try:
            await asyncio.wait_for(shutdown.wait(), timeout=interval_s)
        except asyncio.TimeoutError:
            pass


async def run(
    *,
    once: bool = False,
    backfill: bool = False,
    sources: str | None = None,
    social: bool | None = None,
) -> None:
    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    from news_collector.config import settings

    # ── Persistence ────────────────────────────────────────────────
    from news_collector.stores import AlertStore, ArticleStore, Database, StorylineStore

    db = Database(settings.database.url, echo=settings.database.echo)
    db.create_all()
    article_store = ArticleStore(db)
    alert_store = AlertStore(db)
    storyline_store = StorylineStore(db)

    async with AsyncExitStack() as stack:
        # ── Events ─────────────────────────────────────────────────
        from events import (
            ARTICLE_CLASSIFIED,
            ARTICLE_CREATED,
            EventBus,
            EventPublisher,
            RedisEventSink,
            SinkError,
        )

        bus = EventBus()
        sink = None
        if settings.events.redis_mirror:
            sink = RedisEventSink(settings.redis.url)
            try:
                await sink.connect()
                stack.push_async_callback(sink.close)
            except SinkError as e:
                logger.warning(f"Event mirror disabled: {e}")
                sink = None
        publisher = EventPublisher(queue_size=settings.events.subscriber_queue_size, sink=sink)

        # ── Analysis ───────────────────────────────────────────────
        from analysis import AnalysisWorkerPool, ArticleClassifier, GroqClient, StorylineClusterer

        if not settings.llm.api_key:
            logger.warning("GROQ_API_KEY is not set; analyses will fall back to defaults")
        llm = GroqClient(
            settings.llm.api_key,
            model=settings.llm.model,
            timeout_s=settings.llm.timeout_s,
            temperature=settings.llm.temperature,
        )
        classifier = ArticleClassifier(
            store=article_store,
            llm=llm,
            max_retries=settings.analysis.max_retries,
            backoff_base_s=settings.analysis.backoff_base_s,
        )
        pool = AnalysisWorkerPool(classifier, bus, concurrency=settings.analysis.concurrency)
        clusterer = StorylineClusterer(
            articles=article_store,
            storylines=storyline_store,
            llm=llm,
            window_days=settings.storylines.window_days,
            batch_limit=settings.storylines.batch_limit,
            min_articles=settings.storylines.min_articles,
        )

        # ── Alerts ─────────────────────────────────────────────────
        from alerts import AlertMatcher, RedisNotificationQueue
        from news_collector.core.types import QueueError

        queue = RedisNotificationQueue(settings.redis.url, settings.redis.notification_queue)
        try:
            await queue.connect()
            stack.push_async_callback(queue.close)
        except QueueError as e:
            # enqueue fails and claims are released until Redis is back
            logger.error(f"Notification queue unavailable: {e}")
        matcher = AlertMatcher(
            store=alert_store,
            queue=queue,
            publisher=publisher,
            max_article_age_minutes=settings.alerts.max_article_age_minutes,
        )

        bus.subscribe(ARTICLE_CREATED, pool.on_article_created)
        bus.subscribe(ARTICLE_CLASSIFIED, matcher.on_article_classified)

        # ── Collector ──────────────────────────────────────────────
        from news_collector.collector import NewsCollector
        from news_collector.fetchers import RSSFetcher, TruthSocialFetcher
        from news_collector.sources import parse_sources

        feeds = parse_sources(sources if sources is not None else settings.collector.sources)
        fetcher = await stack.enter_async_context(
            RSSFetcher(timeout_s=settings.collector.fetch_timeout_s)
        )

        social_fetcher = None
        social_enabled = settings.social.enabled if social is None else social
        if social_enabled:
            social_fetcher = await stack.enter_async_context(
                TruthSocialFetcher(
                    account_id=settings.social.account_id,
                    username=settings.social.username,
                    api_base=settings.social.api_base,
                    timeout_s=settings.collector.fetch_timeout_s,
                )
            )

        collector = NewsCollector(
            store=article_store,
            fetcher=fetcher,
            bus=bus,
            feeds=feeds,
            publisher=publisher,
            social_fetcher=social_fetcher,
            feed_delay_s=settings.collector.feed_delay_s,
        )

        # ── Start services ─────────────────────────────────────────
        logger.info(
            f"Starting news collector: {len(feeds)} feeds"
            f"{' + Truth Social' if social_fetcher else ''}, "
            f"{settings.analysis.concurrency} analysis workers"
        )
        pool.start()

        if backfill:
            pending = await article_store.list_unanalyzed()
            for article in pending:
                pool.submit(article.id)
            logger.info(f"Backfill queued {len(pending)} unanalysed articles")

        async def _cluster() -> None:
            result = await clusterer.run_cycle()
            if settings.storylines.summarize:
                await clusterer.refresh_summaries(result.touched)

        tasks: list[asyncio.Task] = []
        if once:
            result = await collector.collect_all()
            logger.info(
                f"Collection: created: {result.created}, duplicates: {result.duplicates}, "
                f"filtered: {result.items_filtered}, feeds failed: {result.feeds_failed}"
            )
            await pool.join()
        else:
            tasks = [
                asyncio.create_task(
                    _every(settings.collector.interval_s, collector.collect_all, "Collection", shutdown_event)
                ),
                asyncio.create_task(
                    _every(settings.storylines.interval_s, _cluster, "Storyline", shutdown_event)
                ),
                asyncio.create_task(
                    _every(settings.events.heartbeat_s, publisher.send_heartbeat, "Heartbeat", shutdown_event)
                ),
            ]

            # ── Wait for shutdown ──────────────────────────────────
            await shutdown_event.wait()

        # ── Teardown ───────────────────────────────────────────────
        logger.info("Shutting down...")

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        await pool.stop()
        publisher.close_all()

        pool_stats = pool.stats
        clf_stats = classifier.stats
        pub_stats = publisher.stats
        logger.info(
            f"Final: collection cycles: {collector.cycles}, "
            f"classified: {clf_stats.articles_classified}, "
            f"analysis failures: {clf_stats.articles_failed}, "
            f"fallbacks: {clf_stats.fallbacks_used}, "
            f"unprocessed: {pool.pending} of {pool_stats.submitted}, "
            f"events: {pub_stats.events_published} (dropped {pub_stats.dropped}), "
            f"LLM tokens: {llm.usage.prompt_tokens + llm.usage.completion_tokens}"
        )

    db.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Trump news collector")
    parser.add_argument("--once", action="store_true", help="Run one collection cycle and exit")
    parser.add_argument("--backfill", action="store_true", help="Re-queue articles that were never analysed")
    parser.add_argument("--sources", default=None, help="Comma-separated feed names (default: all)")
    social_group = parser.add_mutually_exclusive_group()
    social_group.add_argument("--social", dest="social", action="store_true", default=None,
                              help="Also poll Truth Social")
    social_group.add_argument("--no-social", dest="social", action="store_false",
                              help="Skip Truth Social even if enabled")
    args = parser.parse_args()
    asyncio.run(run(once=args.once, backfill=args.backfill, sources=args.sources, social=args.social))
