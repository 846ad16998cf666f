"""
Analysis Worker Pool

Bounded background classification. Newly created articles are queued by id
and picked up by a fixed number of worker tasks, so ingestion never waits on
the LLM and at most `concurrency` articles are analysed at once.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from events.channels import ARTICLE_CLASSIFIED

if TYPE_CHECKING:
    from events.bus import EventBus
    from news_collector.models.news import Article

    from .classifier import ArticleClassifier

logger = logging.getLogger(__name__)


@dataclass
class PoolStats:
    submitted: int = 0
    completed: int = 0
    failed: int = 0
    errors: int = 0


class AnalysisWorkerPool:
    """
    asyncio.Queue of article ids drained by N worker tasks.

    A worker that hits an unexpected error logs it and moves on; one bad
    article never stops the pool.
    """

    def __init__(
        self,
        classifier: ArticleClassifier,
        bus: EventBus,
        *,
        concurrency: int = 3,
    ) -> None:
        self._classifier = classifier
        self._bus = bus
        self._concurrency = max(1, concurrency)
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._workers: list[asyncio.Task[None]] = []
        self._stats = PoolStats()

    @property
    def stats(self) -> PoolStats:
        return self._stats

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._workers)

    def submit(self, article_id: str) -> None:
        """Queue an article for analysis. Never blocks."""
        self._queue.put_nowait(article_id)
        self._stats.submitted += 1

    async def on_article_created(self, article: Article) -> None:
        """Event bus handler for article.created."""
        self.submit(article.id)

    def start(self) -> None:
        if self.running:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"analysis-worker-{i}")
            for i in range(self._concurrency)
        ]
        logger.info("Analysis worker pool started with %d workers", self._concurrency)

    async def join(self, timeout: Optional[float] = None) -> None:
        """Wait until every queued article has been processed."""
        if timeout is None:
            await self._queue.join()
        else:
            await asyncio.wait_for(self._queue.join(), timeout)

    async def stop(self) -> None:
        """Cancel workers. Articles still queued stay unanalysed."""
        for task in self._workers:
            task.cancel()
        for task in self._workers:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._workers = []
        logger.info(
            "Analysis worker pool stopped",
            extra={"completed": self._stats.completed, "pending": self._queue.qsize()},
        )

    async def _worker(self, index: int) -> None:
        while True:
            article_id = await self._queue.get()
            try:
                await self._process(article_id)
            except Exception as e:
                self._stats.errors += 1
                logger.error("Worker %d failed on article %s: %s", index, article_id, e)
            finally:
                self._queue.task_done()

    async def _process(self, article_id: str) -> None:
        article = await self._classifier.classify(article_id)
        if article is None:
            self._stats.failed += 1
            return
        self._stats.completed += 1
        await self._bus.publish(ARTICLE_CLASSIFIED, article)
