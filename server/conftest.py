"""
Shared fixtures: in-memory SQLite stores and model factories.
"""
from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from news_collector.dedup import fingerprint_url
from news_collector.models import Bias, ImpactLevel, NewArticle
from news_collector.stores import AlertStore, ArticleStore, Database, StorylineStore
from news_collector.stores.schema import AlertRow, UserRow

_counter = itertools.count(1)


@pytest.fixture
def db():
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def article_store(db):
    return ArticleStore(db)


@pytest.fixture
def alert_store(db):
    return AlertStore(db)


@pytest.fixture
def storyline_store(db):
    return StorylineStore(db)


@pytest.fixture
def now():
    return datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def new_article(now):
    """Factory for NewArticle values with unique url / fingerprint."""

    def _make(
        title: str = "Trump announces new tariffs on China",
        *,
        content: str = "Donald Trump said on Monday that tariffs would rise.",
        source: str = "CNN",
        published_at: datetime | None = None,
        url: str | None = None,
        impact_level: ImpactLevel = ImpactLevel.C,
    ) -> NewArticle:
        n = next(_counter)
        url = url or f"https://news.example.com/politics/story-{n}"
        return NewArticle(
            title=title,
            url=url,
            fingerprint=fingerprint_url(url),
            source=source,
            content=content,
            published_at=published_at or now - timedelta(minutes=5),
            bias=Bias.LEFT,
            impact_level=impact_level,
        )

    return _make


@pytest.fixture
def seed_alert(db):
    """Insert a user + alert rule straight through the ORM."""

    def _seed(
        keyword: str = "tariff",
        *,
        min_impact: str = "C",
        push: bool = True,
        email: bool = False,
        discord: bool = False,
        active: bool = True,
    ) -> str:
        n = next(_counter)
        with db.session() as session:
            user = UserRow(
                email=f"user{n}@example.com",
                push_subscription={"endpoint": f"https://push.example.com/{n}"},
                discord_webhook=None,
            )
            session.add(user)
            session.flush()
            alert = AlertRow(
                user_id=user.id,
                keyword=keyword,
                min_impact=min_impact,
                notify_push=push,
                notify_email=email,
                notify_discord=discord,
                is_active=active,
            )
            session.add(alert)
            session.flush()
            return alert.id

    return _seed
