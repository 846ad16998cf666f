"""
News Data Models

Core data structures for articles at different pipeline stages.
All models use frozen dataclasses with __post_init__ validation.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Bias(str, Enum):
    """Editorial leaning of a source or article."""

    LEFT = "Left"
    CENTER = "Center"
    RIGHT = "Right"

    @classmethod
    def from_string(cls, value: Any) -> Optional["Bias"]:
        """Convert string to Bias, returning None if not recognised."""
        if not isinstance(value, str):
            return None
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member
        return None


class ImpactLevel(str, Enum):
    """Newsworthiness of an article. S (critical) > A > B > C (low)."""

    S = "S"
    A = "A"
    B = "B"
    C = "C"

    @property
    def priority(self) -> int:
        return _IMPACT_PRIORITY[self.value]

    @classmethod
    def from_string(cls, value: Any) -> Optional["ImpactLevel"]:
        """Convert string to ImpactLevel, returning None if not recognised."""
        if not isinstance(value, str):
            return None
        v = value.strip().upper()
        for member in cls:
            if member.value == v:
                return member
        return None


_IMPACT_PRIORITY = {"S": 4, "A": 3, "B": 2, "C": 1}


def impact_priority(level: ImpactLevel | str | None) -> int:
    """
    Priority used for alert comparisons. Unknown or missing levels rank
    as the lowest priority (C).
    """
    if isinstance(level, ImpactLevel):
        return level.priority
    if isinstance(level, str):
        return _IMPACT_PRIORITY.get(level.strip().upper(), 1)
    return 1


class StorylineStatus(str, Enum):
    ONGOING = "ongoing"
    DEVELOPING = "developing"
    RESOLVED = "resolved"


class StorylineCategory(str, Enum):
    """Narrative categories the clustering model may assign."""

    TARIFF = "tariff"
    LEGAL = "legal"
    ELECTION = "election"
    FOREIGN_POLICY = "foreign_policy"
    DOMESTIC_POLICY = "domestic_policy"
    PERSONNEL = "personnel"
    MEDIA = "media"
    OTHER = "other"

    @classmethod
    def from_string(cls, value: Any) -> "StorylineCategory":
        """Convert string to StorylineCategory, defaulting to OTHER."""
        if not isinstance(value, str):
            return cls.OTHER
        v = value.strip().lower().replace(" ", "_").replace("-", "_")
        for member in cls:
            if member.value == v:
                return member
        return cls.OTHER


@dataclass(frozen=True)
class FeedSource:
    """One entry in the source registry."""

    url: str
    source: str
    bias: Bias

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("url must be non-empty")
        if not self.source:
            raise ValueError("source must be non-empty")


@dataclass(frozen=True)
class FeedItem:
    """
    A feed entry normalised by the RSS fetcher, before filtering and dedup.
    """

    title: str
    link: str
    content: str
    snippet: str
    published_at: datetime
    image_url: Optional[str] = None

    def __post_init__(self) -> None:
        if self.published_at.tzinfo is None:
            raise ValueError("published_at must be timezone-aware")


@dataclass(frozen=True)
class SocialPost:
    """A Truth Social status after reblog / reply filtering and HTML stripping."""

    id: str
    text: str
    url: str
    published_at: datetime
    image_url: Optional[str] = None
    repost_count: int = 0
    like_count: int = 0

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id must be non-empty")
        if not self.text:
            raise ValueError("text must be non-empty")
        if self.published_at.tzinfo is None:
            raise ValueError("published_at must be timezone-aware")


@dataclass(frozen=True)
class NewArticle:
    """Fields for a first-sighting insert into the article store."""

    title: str
    url: str
    fingerprint: str
    source: str
    content: str
    published_at: datetime
    bias: Optional[Bias] = None
    impact_level: ImpactLevel = ImpactLevel.C
    image_url: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("url must be non-empty")
        if not self.fingerprint:
            raise ValueError("fingerprint must be non-empty")


@dataclass(frozen=True)
class Article:
    """
    Read view of a stored article.

    Produced by the article store; never mutated in memory. Classification
    results are written back through the store and re-read by the next
    consumer.
    """

    id: str
    title: str
    url: str
    source: str
    content: str
    published_at: datetime
    impact_level: ImpactLevel
    bias: Optional[Bias] = None
    sentiment: Optional[float] = None
    summary: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    image_url: Optional[str] = None
    analyzed_at: Optional[datetime] = None

    def to_event_dict(self) -> dict[str, Any]:
        """Summary shape broadcast to live subscribers."""
        return {
            "id": self.id,
            "title": self.title,
            "source": self.source,
            "impactLevel": self.impact_level.value,
            "sentiment": self.sentiment,
            "summary": list(self.summary) if self.summary else None,
            "publishedAt": self.published_at.isoformat(),
        }


@dataclass(frozen=True)
class Classification:
    """Combined result of the per-article sub-analyses."""

    summary: tuple[str, ...]
    sentiment: float
    bias: Bias
    impact_level: ImpactLevel
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if len(self.summary) > 3:
            raise ValueError(f"summary must have at most 3 items, got {len(self.summary)}")
        if not (-1.0 <= self.sentiment <= 1.0):
            raise ValueError(
                f"sentiment must be in range [-1.0, 1.0], got {self.sentiment}"
            )


@dataclass(frozen=True)
class StorylineEvent:
    """One article on a storyline's timeline."""

    article_id: str
    title: str
    published_at: datetime
    is_key_event: bool = False


@dataclass(frozen=True)
class Storyline:
    """Read view of a storyline and its linked articles, oldest first."""

    id: str
    title: str
    description: str
    category: StorylineCategory
    status: StorylineStatus
    first_event_at: datetime
    last_event_at: datetime
    event_count: int
    summary: Optional[str] = None
    events: tuple[StorylineEvent, ...] = ()

    @property
    def article_ids(self) -> frozenset[str]:
        return frozenset(e.article_id for e in self.events)


@dataclass(frozen=True)
class UserContact:
    """Denormalised contact details of an alert owner."""

    id: str
    email: Optional[str] = None
    push_subscription: Optional[dict[str, Any]] = None
    discord_webhook: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "pushSubscription": self.push_subscription,
            "discordWebhook": self.discord_webhook,
        }


@dataclass(frozen=True)
class AlertRule:
    """An active keyword alert together with its owner's contact info."""

    id: str
    user_id: str
    keyword: str
    min_impact: ImpactLevel
    notify_push: bool
    notify_email: bool
    notify_discord: bool
    user: UserContact
    is_active: bool = True

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id must be non-empty")
        if not self.keyword:
            raise ValueError("keyword must be non-empty")

    @property
    def channels(self) -> tuple[str, ...]:
        """Enabled delivery channels, in a fixed order."""
        result = []
        if self.notify_push:
            result.append("push")
        if self.notify_email:
            result.append("email")
        if self.notify_discord:
            result.append("discord")
        return tuple(result)
