"""
Storyline Clusterer

Hourly grouping of recent, not-yet-clustered articles into storylines. The
model proposes groups; each group either merges into a matching ongoing
storyline or becomes a new one. Unusable model output abandons the whole
cycle before anything is written.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable, Optional, Sequence

from news_collector.core.types import ClusteringError, LLMError, NewsCollectorError
from news_collector.models.news import StorylineStatus

from . import prompts
from .schemas import StorylineGroup, parse_storyline_groups, parse_storyline_summary

if TYPE_CHECKING:
    from news_collector.models.news import Article
    from news_collector.stores import ArticleStore, StorylineStore

    from .llm_client import GroqClient

logger = logging.getLogger(__name__)

TITLE_MATCH_CHARS = 20
MIN_GROUP_SIZE = 2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ClusteringResult:
    """Counters for one clustering cycle."""

    candidates: int = 0
    groups_proposed: int = 0
    groups_skipped: int = 0
    storylines_created: int = 0
    storylines_merged: int = 0
    articles_linked: int = 0
    abandoned: bool = False
    touched: list[str] = field(default_factory=list)


class StorylineClusterer:
    """Groups articles into storylines with the LLM and keeps summaries fresh."""

    def __init__(
        self,
        *,
        articles: ArticleStore,
        storylines: StorylineStore,
        llm: GroqClient,
        window_days: int = 7,
        batch_limit: int = 100,
        min_articles: int = 3,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._articles = articles
        self._storylines = storylines
        self._llm = llm
        self._window = timedelta(days=window_days)
        self._batch_limit = batch_limit
        self._min_articles = min_articles
        self._clock = clock

    async def run_cycle(self) -> ClusteringResult:
        """Cluster the current batch of unclustered recent articles."""
        result = ClusteringResult()
        since = self._clock() - self._window
        batch = await self._articles.find_unclustered_recent(since, self._batch_limit)
        result.candidates = len(batch)

        if len(batch) < self._min_articles:
            logger.info("Not enough unlinked articles for clustering (%d)", len(batch))
            return result

        try:
            groups = await self._propose_groups(batch)
        except (LLMError, ClusteringError) as e:
            result.abandoned = True
            logger.warning("Storyline generation abandoned: %s", e)
            return result

        result.groups_proposed = len(groups)
        by_id = {a.id: a for a in batch}
        assigned: set[str] = set()

        for group in groups:
            try:
                await self._apply_group(group, by_id, assigned, result)
            except NewsCollectorError as e:
                result.groups_skipped += 1
                logger.error("Storyline group %r failed: %s", group.title[:50], e)

        logger.info(
            "Processed %d storylines", result.groups_proposed,
            extra={
                "created": result.storylines_created,
                "merged": result.storylines_merged,
                "linked": result.articles_linked,
                "skipped": result.groups_skipped,
            },
        )
        return result

    async def _propose_groups(self, batch: list[Article]) -> list[StorylineGroup]:
        raw = await self._llm.complete_json(
            prompts.build_storyline_prompt((a.id, a.title) for a in batch),
            system_prompt=prompts.STORYLINE_SYSTEM_PROMPT,
            max_tokens=2000,
            operation="storylines",
        )
        return parse_storyline_groups(raw)

    async def _apply_group(
        self,
        group: StorylineGroup,
        by_id: dict[str, Article],
        assigned: set[str],
        result: ClusteringResult,
    ) -> None:
        if len(group.article_ids) < MIN_GROUP_SIZE:
            result.groups_skipped += 1
            return

        # ids outside this batch, or already placed this cycle, are ignored
        members = [
            by_id[article_id]
            for article_id in group.article_ids
            if article_id in by_id and article_id not in assigned
        ]
        if not members:
            result.groups_skipped += 1
            return

        existing = await self._storylines.find_ongoing_match(
            group.category, group.title[:TITLE_MATCH_CHARS]
        )
        if existing is not None:
            added = await self._storylines.add_articles(existing.id, members)
            assigned.update(a.id for a in members)
            result.storylines_merged += 1
            result.articles_linked += added
            if added and existing.id not in result.touched:
                result.touched.append(existing.id)
            return

        created = await self._storylines.create_storyline(
            title=group.title,
            description=group.description,
            category=group.category,
            articles=members,
        )
        if created is None:
            result.groups_skipped += 1
            return
        assigned.update(created.article_ids)
        result.storylines_created += 1
        result.articles_linked += created.event_count
        result.touched.append(created.id)

    async def summarize_storyline(self, storyline_id: str) -> Optional[str]:
        """Refresh a storyline's current-state summary from its timeline."""
        storyline = await self._storylines.get_storyline(storyline_id)
        if storyline is None:
            logger.warning("Storyline not found: %s", storyline_id)
            return None

        timeline = [(e.published_at.isoformat(), e.title) for e in storyline.events]
        try:
            raw = await self._llm.complete_json(
                prompts.build_storyline_summary_prompt(storyline.title, timeline),
                system_prompt=prompts.STORYLINE_SUMMARY_SYSTEM_PROMPT,
                max_tokens=400,
                operation="storyline_summary",
            )
            summary = parse_storyline_summary(raw)
        except LLMError as e:
            logger.warning("Storyline summary failed for %s: %s", storyline_id, e)
            return None

        try:
            await self._storylines.update_summary(storyline_id, summary)
        except NewsCollectorError as e:
            logger.warning("Storyline summary not saved for %s: %s", storyline_id, e)
            return None
        logger.info("Storyline summary updated: %s", storyline.title[:60])
        return summary

    async def refresh_summaries(self, touched: Sequence[str]) -> int:
        """
        Summarize the storylines a cycle touched, plus any ongoing storyline
        still without a summary from an earlier failed attempt.

        Each storyline is handled on its own; returns how many were updated.
        """
        pending = list(dict.fromkeys(touched))
        for storyline in await self._storylines.list_storylines(StorylineStatus.ONGOING):
            if storyline.summary is None and storyline.id not in pending:
                pending.append(storyline.id)

        updated = 0
        for storyline_id in pending:
            if await self.summarize_storyline(storyline_id) is not None:
                updated += 1
        return updated
