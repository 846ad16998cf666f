"""
Storyline Store

Storylines and their article links. Every write that links articles skips
articles already linked to any storyline, so an article belongs to at most
one storyline even when two clustering cycles overlap.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from news_collector.core.types import PersistenceError, StorylineNotFoundError
from news_collector.models.news import (
    Article,
    Storyline,
    StorylineCategory,
    StorylineEvent,
    StorylineStatus,
)

from .database import Database, as_utc
from .schema import ArticleRow, StorylineArticleRow, StorylineRow

logger = logging.getLogger(__name__)


def _row_to_storyline(row: StorylineRow, session: Session) -> Storyline:
    links = session.execute(
        select(StorylineArticleRow, ArticleRow)
        .join(ArticleRow, ArticleRow.id == StorylineArticleRow.article_id)
        .where(StorylineArticleRow.storyline_id == row.id)
        .order_by(ArticleRow.published_at.asc())
    ).all()
    events = tuple(
        StorylineEvent(
            article_id=article.id,
            title=article.title,
            published_at=as_utc(article.published_at),
            is_key_event=bool(link.is_key_event),
        )
        for link, article in links
    )
    return Storyline(
        id=row.id,
        title=row.title,
        description=row.description or "",
        category=StorylineCategory.from_string(row.category),
        status=StorylineStatus(row.status),
        first_event_at=as_utc(row.first_event_at),
        last_event_at=as_utc(row.last_event_at),
        event_count=row.event_count,
        summary=row.summary,
        events=events,
    )


def _already_linked(session: Session, article_ids: Sequence[str]) -> set[str]:
    if not article_ids:
        return set()
    return set(
        session.scalars(
            select(StorylineArticleRow.article_id).where(
                StorylineArticleRow.article_id.in_(list(article_ids))
            )
        ).all()
    )


class StorylineStore:
    """Create, merge into and summarise storylines."""

    def __init__(self, db: Database) -> None:
        self._db = db

    # ── Reads ─────────────────────────────────────────────────────────────────

    async def find_ongoing_match(
        self,
        category: StorylineCategory,
        title_prefix: str,
    ) -> Optional[Storyline]:
        """
        Most recently active ongoing storyline with the same category, or
        whose title contains `title_prefix` (case-insensitive).
        """
        return await self._db.run(self._find_ongoing_match, category, title_prefix)

    def _find_ongoing_match(
        self,
        category: StorylineCategory,
        title_prefix: str,
    ) -> Optional[Storyline]:
        conditions = [StorylineRow.category == category.value]
        prefix = title_prefix.strip().lower()
        if prefix:
            conditions.append(func.lower(StorylineRow.title).contains(prefix, autoescape=True))
        with self._db.session() as session:
            row = session.scalars(
                select(StorylineRow)
                .where(StorylineRow.status == StorylineStatus.ONGOING.value)
                .where(or_(*conditions))
                .order_by(StorylineRow.last_event_at.desc())
            ).first()
            return _row_to_storyline(row, session) if row is not None else None

    async def get_storyline(self, storyline_id: str) -> Optional[Storyline]:
        return await self._db.run(self._get_storyline, storyline_id)

    def _get_storyline(self, storyline_id: str) -> Optional[Storyline]:
        with self._db.session() as session:
            row = session.get(StorylineRow, storyline_id)
            return _row_to_storyline(row, session) if row is not None else None

    # ── Writes ────────────────────────────────────────────────────────────────

    async def create_storyline(
        self,
        *,
        title: str,
        description: str,
        category: StorylineCategory,
        articles: Sequence[Article],
    ) -> Optional[Storyline]:
        """
        Create an ongoing storyline from its member articles.

        The earliest and latest members are key events. Members already
        linked elsewhere are dropped; returns None when fewer than two remain.
        """
        return await self._db.run(
            self._create_storyline, title, description, category, list(articles)
        )

    def _create_storyline(
        self,
        title: str,
        description: str,
        category: StorylineCategory,
        articles: list[Article],
    ) -> Optional[Storyline]:
        try:
            with self._db.session() as session:
                taken = _already_linked(session, [a.id for a in articles])
                members = sorted(
                    (a for a in articles if a.id not in taken),
                    key=lambda a: a.published_at,
                )
                if len(members) < 2:
                    return None

                first, last = members[0], members[-1]
                row = StorylineRow(
                    title=title,
                    description=description,
                    category=category.value,
                    status=StorylineStatus.ONGOING.value,
                    first_event_at=first.published_at,
                    last_event_at=last.published_at,
                    event_count=len(members),
                )
                session.add(row)
                session.flush()
                for article in members:
                    session.add(
                        StorylineArticleRow(
                            storyline_id=row.id,
                            article_id=article.id,
                            is_key_event=article.id in (first.id, last.id),
                        )
                    )
                session.flush()
                storyline = _row_to_storyline(row, session)
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Storyline create failed: {exc}", "create_storyline", {"title": title}
            ) from exc

        logger.info(
            "Storyline created",
            extra={"storyline_id": storyline.id, "articles": storyline.event_count},
        )
        return storyline

    async def add_articles(self, storyline_id: str, articles: Sequence[Article]) -> int:
        """
        Merge articles into an existing storyline.

        Only articles not linked to any storyline are added. lastEventAt
        moves forward to the newest new member, never backward; eventCount
        grows by the number of newly linked articles. Returns that number.

        Raises:
            StorylineNotFoundError: the id no longer resolves.
        """
        return await self._db.run(self._add_articles, storyline_id, list(articles))

    def _add_articles(self, storyline_id: str, articles: list[Article]) -> int:
        try:
            with self._db.session() as session:
                row = session.get(StorylineRow, storyline_id)
                if row is None:
                    raise StorylineNotFoundError(storyline_id)

                taken = _already_linked(session, [a.id for a in articles])
                added = [a for a in articles if a.id not in taken]
                if not added:
                    return 0

                for article in added:
                    session.add(
                        StorylineArticleRow(storyline_id=row.id, article_id=article.id)
                    )
                newest = max(a.published_at for a in added)
                if newest > as_utc(row.last_event_at):
                    row.last_event_at = newest
                row.event_count = (row.event_count or 0) + len(added)
                session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Storyline merge failed: {exc}",
                "add_articles",
                {"storyline_id": storyline_id},
            ) from exc

        logger.info(
            "Articles merged into storyline",
            extra={"storyline_id": storyline_id, "added": len(added)},
        )
        return len(added)

    async def link_article_to_storyline(
        self,
        storyline_id: str,
        article_id: str,
        *,
        is_key_event: bool = False,
    ) -> bool:
        """Insert one link, skipping duplicates. Returns True if a row was added."""
        return await self._db.run(
            self._link_article_to_storyline, storyline_id, article_id, is_key_event
        )

    def _link_article_to_storyline(
        self,
        storyline_id: str,
        article_id: str,
        is_key_event: bool,
    ) -> bool:
        try:
            with self._db.session() as session:
                if _already_linked(session, [article_id]):
                    return False
                session.add(
                    StorylineArticleRow(
                        storyline_id=storyline_id,
                        article_id=article_id,
                        is_key_event=is_key_event,
                    )
                )
                session.flush()
        except IntegrityError:
            return False
        return True

    async def update_summary(self, storyline_id: str, summary: str) -> None:
        await self._db.run(self._update_summary, storyline_id, summary)

    def _update_summary(self, storyline_id: str, summary: str) -> None:
        try:
            with self._db.session() as session:
                row = session.get(StorylineRow, storyline_id)
                if row is None:
                    raise StorylineNotFoundError(storyline_id)
                row.summary = summary
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Storyline summary update failed: {exc}",
                "update_summary",
                {"storyline_id": storyline_id},
            ) from exc

    async def list_storylines(
        self,
        status: Optional[StorylineStatus] = None,
    ) -> list[Storyline]:
        """All storylines (optionally by status), most recently active first."""
        return await self._db.run(self._list_storylines, status)

    def _list_storylines(self, status: Optional[StorylineStatus]) -> list[Storyline]:
        query = select(StorylineRow).order_by(StorylineRow.last_event_at.desc())
        if status is not None:
            query = query.where(StorylineRow.status == status.value)
        with self._db.session() as session:
            return [_row_to_storyline(r, session) for r in session.scalars(query).all()]
