"""
Persistence layer.

Re-exports:
    - Database: engine + session factory, built once in main.py
    - ArticleStore / AlertStore / StorylineStore: async accessors
"""
from .alert_store import AlertStore
from .article_store import ArticleStore
from .database import Database
from .storyline_store import StorylineStore

__all__ = [
    "AlertStore",
    "ArticleStore",
    "Database",
    "StorylineStore",
]
