"""
Core types and exceptions for the news pipeline.
"""
from .types import (
    ArticleNotFoundError,
    BackoffSchedule,
    ClusteringError,
    DuplicateArticleError,
    FetchError,
    LLMError,
    LLMResponseError,
    NewsCollectorError,
    PersistenceError,
    QueueError,
    StorylineNotFoundError,
)

__all__ = [
    "ArticleNotFoundError",
    "BackoffSchedule",
    "ClusteringError",
    "DuplicateArticleError",
    "FetchError",
    "LLMError",
    "LLMResponseError",
    "NewsCollectorError",
    "PersistenceError",
    "QueueError",
    "StorylineNotFoundError",
]
