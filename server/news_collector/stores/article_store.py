"""
Article Store

Async accessor over the articles table. Every consumer re-reads articles
through this store; nothing caches article rows in memory.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from news_collector.core.types import (
    ArticleNotFoundError,
    DuplicateArticleError,
    PersistenceError,
)
from news_collector.models.news import Article, Bias, ImpactLevel, NewArticle

from .database import Database, as_utc
from .schema import ArticleRow, StorylineArticleRow

logger = logging.getLogger(__name__)


def row_to_article(row: ArticleRow) -> Article:
    return Article(
        id=row.id,
        title=row.title,
        url=row.url,
        source=row.source,
        content=row.content or "",
        published_at=as_utc(row.published_at),
        impact_level=ImpactLevel.from_string(row.impact_level) or ImpactLevel.C,
        bias=Bias.from_string(row.bias),
        sentiment=row.sentiment,
        summary=tuple(row.summary or ()),
        tags=tuple(row.tags or ()),
        image_url=row.image_url,
        analyzed_at=as_utc(row.analyzed_at),
    )


class ArticleStore:
    """Create, look up and enrich articles."""

    def __init__(self, db: Database) -> None:
        self._db = db

    # ── Writes ────────────────────────────────────────────────────────────────

    async def create_article(self, new: NewArticle) -> Article:
        """
        Insert a first-sighting article with default classification fields.

        Raises:
            DuplicateArticleError: url or fingerprint already stored.
            PersistenceError: any other database failure.
        """
        return await self._db.run(self._create_article, new)

    def _create_article(self, new: NewArticle) -> Article:
        try:
            with self._db.session() as session:
                row = ArticleRow(
                    title=new.title,
                    url=new.url,
                    fingerprint=new.fingerprint,
                    source=new.source,
                    content=new.content,
                    published_at=new.published_at,
                    bias=new.bias.value if new.bias else None,
                    impact_level=new.impact_level.value,
                    summary=[],
                    tags=[],
                    image_url=new.image_url,
                )
                session.add(row)
                session.flush()
                article = row_to_article(row)
        except IntegrityError as exc:
            raise DuplicateArticleError(new.url, new.fingerprint) from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Article insert failed: {exc}", "create_article", {"url": new.url}
            ) from exc

        logger.debug("Article stored", extra={"article_id": article.id, "source": article.source})
        return article

    async def update_classification(
        self,
        article_id: str,
        *,
        summary: Sequence[str],
        sentiment: float,
        impact_level: ImpactLevel,
        bias: Optional[Bias] = None,
        tags: Optional[Sequence[str]] = None,
        embedding: Optional[Sequence[float]] = None,
    ) -> Article:
        """
        Write AI-derived fields and stamp analyzedAt.

        Identity fields are never touched. A None bias / tags / embedding
        leaves the stored value unchanged.

        Raises:
            ArticleNotFoundError: the id no longer resolves.
        """
        return await self._db.run(
            self._update_classification,
            article_id,
            list(summary),
            sentiment,
            impact_level,
            bias,
            list(tags) if tags is not None else None,
            list(embedding) if embedding is not None else None,
        )

    def _update_classification(
        self,
        article_id: str,
        summary: list[str],
        sentiment: float,
        impact_level: ImpactLevel,
        bias: Optional[Bias],
        tags: Optional[list[str]],
        embedding: Optional[list[float]],
    ) -> Article:
        try:
            with self._db.session() as session:
                row = session.get(ArticleRow, article_id)
                if row is None:
                    raise ArticleNotFoundError(article_id)
                row.summary = summary
                row.sentiment = sentiment
                row.impact_level = impact_level.value
                if bias is not None:
                    row.bias = bias.value
                if tags is not None:
                    row.tags = tags
                if embedding is not None:
                    row.embedding = embedding
                row.analyzed_at = datetime.now(timezone.utc)
                session.flush()
                return row_to_article(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Article update failed: {exc}",
                "update_classification",
                {"article_id": article_id},
            ) from exc

    # ── Reads ─────────────────────────────────────────────────────────────────

    async def find_by_fingerprint(self, fingerprint: str) -> Optional[Article]:
        return await self._db.run(self._find_by_fingerprint, fingerprint)

    def _find_by_fingerprint(self, fingerprint: str) -> Optional[Article]:
        with self._db.session() as session:
            row = session.scalars(
                select(ArticleRow).where(ArticleRow.fingerprint == fingerprint)
            ).first()
            return row_to_article(row) if row is not None else None

    async def get_article(self, article_id: str) -> Optional[Article]:
        return await self._db.run(self._get_article, article_id)

    def _get_article(self, article_id: str) -> Optional[Article]:
        with self._db.session() as session:
            row = session.get(ArticleRow, article_id)
            return row_to_article(row) if row is not None else None

    async def find_unclustered_recent(self, since: datetime, limit: int) -> list[Article]:
        """Articles published after `since` with no storyline link, newest first."""
        return await self._db.run(self._find_unclustered_recent, since, limit)

    def _find_unclustered_recent(self, since: datetime, limit: int) -> list[Article]:
        linked = select(StorylineArticleRow.article_id)
        with self._db.session() as session:
            rows = session.scalars(
                select(ArticleRow)
                .where(ArticleRow.published_at >= since)
                .where(ArticleRow.id.not_in(linked))
                .order_by(ArticleRow.published_at.desc())
                .limit(limit)
            ).all()
            return [row_to_article(r) for r in rows]

    async def list_unanalyzed(self, limit: int = 500) -> list[Article]:
        """Articles never classified (analyzedAt unset), oldest first."""
        return await self._db.run(self._list_unanalyzed, limit)

    def _list_unanalyzed(self, limit: int) -> list[Article]:
        with self._db.session() as session:
            rows = session.scalars(
                select(ArticleRow)
                .where(ArticleRow.analyzed_at.is_(None))
                .order_by(ArticleRow.created_at.asc())
                .limit(limit)
            ).all()
            return [row_to_article(r) for r in rows]
