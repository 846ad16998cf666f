"""
Article Classifier

Enriches one stored article with an LLM summary, sentiment, bias, impact
level and topic tags. The five sub-analyses run concurrently; each retries
with exponential backoff and falls back to a fixed default, so a flaky
model degrades the result instead of failing it.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, TypeVar

from news_collector.core.types import (
    ArticleNotFoundError,
    BackoffSchedule,
    LLMError,
    NewsCollectorError,
)
from news_collector.models.news import Article, Classification, ImpactLevel

from . import prompts
from .schemas import (
    DEFAULT_BIAS,
    DEFAULT_IMPACT,
    DEFAULT_SENTIMENT,
    DEFAULT_SUMMARY,
    FAILED_SUMMARY,
    default_tags,
    parse_bias,
    parse_impact,
    parse_sentiment,
    parse_summary,
    parse_tags,
)

if TYPE_CHECKING:
    from news_collector.stores import ArticleStore

    from .llm_client import GroqClient

logger = logging.getLogger(__name__)

T = TypeVar("T")
Sleep = Callable[[float], Awaitable[None]]


@dataclass
class ClassifierStats:
    """Statistics for the classifier."""

    articles_classified: int = 0
    articles_failed: int = 0
    articles_missing: int = 0
    fallbacks_used: int = 0


class ArticleClassifier:
    """
    LLM enrichment for stored articles.

    classify() never raises for model trouble: exhausted sub-calls use their
    defaults, and any other failure writes the "analysis failed" fallback.
    """

    def __init__(
        self,
        *,
        store: ArticleStore,
        llm: GroqClient,
        max_retries: int = 3,
        backoff_base_s: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._store = store
        self._llm = llm
        self._max_retries = max(1, max_retries)
        self._backoff_base_s = backoff_base_s
        self._sleep = sleep
        self._stats = ClassifierStats()

    @property
    def stats(self) -> ClassifierStats:
        return self._stats

    async def classify(self, article_id: str) -> Optional[Article]:
        """
        Analyse and update one article.

        Returns the updated article, or None when the article is missing or
        the analysis failed (the fallback has then been written).
        """
        article = await self._store.get_article(article_id)
        if article is None:
            self._stats.articles_missing += 1
            logger.error("Article not found: %s", article_id)
            return None

        logger.info("Analyzing article: %s...", article.title[:50])

        try:
            result = await self.analyze(article)
            updated = await self._store.update_classification(
                article_id,
                summary=result.summary,
                sentiment=result.sentiment,
                impact_level=result.impact_level,
                bias=result.bias,
                tags=result.tags,
            )
        except ArticleNotFoundError:
            self._stats.articles_missing += 1
            logger.error("Article disappeared during analysis: %s", article_id)
            return None
        except Exception as e:
            self._stats.articles_failed += 1
            logger.error("Analysis failed for article %s: %s", article_id, e)
            await self._write_failure(article_id)
            return None

        self._stats.articles_classified += 1
        logger.info(
            "Analysis complete for article %s", article_id,
            extra={"impact": updated.impact_level.value, "sentiment": updated.sentiment},
        )
        return updated

    async def analyze(self, article: Article) -> Classification:
        """Run every sub-analysis concurrently and combine the results."""
        summary, sentiment, bias, impact, tags = await asyncio.gather(
            self._with_retry(
                "summary",
                prompts.build_summary_prompt(article.title, article.content),
                parse_summary,
                DEFAULT_SUMMARY,
                max_tokens=300,
            ),
            self._with_retry(
                "sentiment",
                prompts.build_sentiment_prompt(article.content),
                parse_sentiment,
                DEFAULT_SENTIMENT,
                max_tokens=50,
            ),
            self._with_retry(
                "bias",
                prompts.build_bias_prompt(article.content),
                parse_bias,
                DEFAULT_BIAS,
                max_tokens=50,
            ),
            self._with_retry(
                "impact",
                prompts.build_impact_prompt(article.title),
                parse_impact,
                DEFAULT_IMPACT,
                max_tokens=50,
            ),
            self._with_retry(
                "tags",
                prompts.build_tags_prompt(article.title, article.content),
                parse_tags,
                default_tags(article.title, article.content),
                max_tokens=100,
            ),
        )
        return Classification(
            summary=summary,
            sentiment=sentiment,
            bias=bias,
            impact_level=impact,
            tags=tags,
        )

    async def _with_retry(
        self,
        operation: str,
        prompt: str,
        parse: Callable[[dict], T],
        default: T,
        *,
        max_tokens: int,
    ) -> T:
        backoff = BackoffSchedule(initial_delay_seconds=self._backoff_base_s)
        for attempt in range(self._max_retries):
            try:
                raw = await self._llm.complete_json(
                    prompt, max_tokens=max_tokens, operation=operation
                )
                return parse(raw)
            except LLMError as e:
                logger.warning("%s attempt %d failed: %s", operation.capitalize(), attempt + 1, e)
                if attempt + 1 < self._max_retries:
                    await self._sleep(backoff.next_delay())

        self._stats.fallbacks_used += 1
        logger.warning("%s fell back to default after %d attempts", operation.capitalize(), self._max_retries)
        return default

    async def _write_failure(self, article_id: str) -> None:
        try:
            await self._store.update_classification(
                article_id,
                summary=FAILED_SUMMARY,
                sentiment=0.0,
                impact_level=ImpactLevel.C,
            )
        except NewsCollectorError as e:
            logger.error("Could not record analysis failure for %s: %s", article_id, e)
