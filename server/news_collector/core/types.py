"""
Core Type Definitions and Exceptions

Pipeline-wide exceptions and the retry backoff schedule.

Error taxonomy:
    - transient external failures (FetchError, LLMError) are retried or skipped
    - DuplicateArticleError is a normal skip outcome, not a failure
    - ArticleNotFoundError / StorylineNotFoundError abandon the item, no retry
    - ClusteringError abandons the whole batch without partial writes
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


class NewsCollectorError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class FetchError(NewsCollectorError):
    """Raised when a feed cannot be retrieved or parsed."""

    def __init__(
        self,
        message: str,
        source: str,
        url: str = "",
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        ctx["source"] = source
        if url:
            ctx["url"] = url
        super().__init__(message, ctx)
        self.source = source
        self.url = url


class DuplicateArticleError(NewsCollectorError):
    """Raised when an insert hits the url / fingerprint unique constraint."""

    def __init__(self, url: str, fingerprint: str) -> None:
        super().__init__(
            "Article already stored",
            {"url": url, "fingerprint": fingerprint[:12]},
        )
        self.url = url
        self.fingerprint = fingerprint


class ArticleNotFoundError(NewsCollectorError):
    """Raised when an article id no longer resolves to a row."""

    def __init__(self, article_id: str) -> None:
        super().__init__("Article not found", {"article_id": article_id})
        self.article_id = article_id


class StorylineNotFoundError(NewsCollectorError):
    """Raised when a storyline id no longer resolves to a row."""

    def __init__(self, storyline_id: str) -> None:
        super().__init__("Storyline not found", {"storyline_id": storyline_id})
        self.storyline_id = storyline_id


class PersistenceError(NewsCollectorError):
    """Raised when a database write fails for a reason other than a duplicate."""

    def __init__(
        self,
        message: str,
        operation: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        ctx["operation"] = operation
        super().__init__(message, ctx)
        self.operation = operation


class LLMError(NewsCollectorError):
    """Raised when the LLM provider call fails (transport, status, timeout)."""


class LLMResponseError(LLMError):
    """Raised when the LLM answers with empty, non-JSON or wrongly shaped output."""


class ClusteringError(NewsCollectorError):
    """Raised when the clustering model output cannot be used."""


class QueueError(NewsCollectorError):
    """Raised when a notification job cannot be enqueued."""


@dataclass
class BackoffSchedule:
    """Exponential backoff for bounded retry loops: 1s, 2s, 4s, ..."""

    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 60.0
    multiplier: float = 2.0
    current_delay: float = field(default=1.0, init=False)

    def __post_init__(self) -> None:
        self.current_delay = self.initial_delay_seconds

    def next_delay(self) -> float:
        """Return the delay for this attempt and advance the schedule."""
        delay = self.current_delay
        self.current_delay = min(
            self.current_delay * self.multiplier,
            self.max_delay_seconds,
        )
        return delay
