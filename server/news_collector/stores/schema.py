"""
Database Schema

SQLAlchemy ORM tables backing the article, alert and storyline stores.
The article table is the single source of truth shared by every component.
"""
from __future__ import annotations

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


class ArticleRow(Base):
    __tablename__ = "articles"

    id = Column(String(32), primary_key=True, default=_new_id)
    url = Column(Text, nullable=False, unique=True)
    fingerprint = Column(String(64), nullable=False, unique=True, index=True)

    # Article content
    title = Column(Text, nullable=False)
    source = Column(String, nullable=False)
    content = Column(Text, nullable=False, default="")
    published_at = Column(DateTime(timezone=True), nullable=False)
    image_url = Column(Text)

    # AI-generated metadata
    bias = Column(String(8))
    impact_level = Column(String(1), nullable=False, default="C")
    sentiment = Column(Float)
    summary = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)
    embedding = Column(JSON)
    analyzed_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    storyline_links = relationship("StorylineArticleRow", back_populates="article")

    __table_args__ = (
        Index("ix_articles_published_at", "published_at"),
    )


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=_new_id)
    email = Column(String, unique=True)
    push_subscription = Column(JSON)
    discord_webhook = Column(Text)

    alerts = relationship("AlertRow", back_populates="user")


class AlertRow(Base):
    __tablename__ = "alerts"

    id = Column(String(32), primary_key=True, default=_new_id)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    keyword = Column(String, nullable=False)
    min_impact = Column(String(1), nullable=False, default="C")
    notify_push = Column(Boolean, nullable=False, default=False)
    notify_email = Column(Boolean, nullable=False, default=False)
    notify_discord = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("UserRow", back_populates="alerts", lazy="joined")


class NotificationDispatchRow(Base):
    """At most one row per (alert, article): the at-most-once delivery marker."""

    __tablename__ = "notification_dispatches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    alert_id = Column(String(32), ForeignKey("alerts.id"), nullable=False)
    article_id = Column(String(32), ForeignKey("articles.id"), nullable=False)
    channels = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("alert_id", "article_id", name="uq_dispatch_alert_article"),
    )


class StorylineRow(Base):
    __tablename__ = "storylines"

    id = Column(String(32), primary_key=True, default=_new_id)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String, nullable=False, default="other")
    status = Column(String, nullable=False, default="ongoing")
    summary = Column(Text)
    first_event_at = Column(DateTime(timezone=True), nullable=False)
    last_event_at = Column(DateTime(timezone=True), nullable=False)
    event_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    articles = relationship(
        "StorylineArticleRow",
        back_populates="storyline",
        cascade="all, delete-orphan",
    )


class StorylineArticleRow(Base):
    __tablename__ = "storyline_articles"

    storyline_id = Column(String(32), ForeignKey("storylines.id"), primary_key=True)
    article_id = Column(String(32), ForeignKey("articles.id"), primary_key=True)
    is_key_event = Column(Boolean, nullable=False, default=False)
    added_at = Column(DateTime(timezone=True), server_default=func.now())

    storyline = relationship("StorylineRow", back_populates="articles")
    article = relationship("ArticleRow", back_populates="storyline_links")

    __table_args__ = (
        Index("ix_storyline_articles_article_id", "article_id"),
    )
