"""
News pipeline data models.
"""
from .news import (
    AlertRule,
    Article,
    Bias,
    Classification,
    FeedItem,
    FeedSource,
    ImpactLevel,
    NewArticle,
    SocialPost,
    Storyline,
    StorylineCategory,
    StorylineEvent,
    StorylineStatus,
    UserContact,
    impact_priority,
)

__all__ = [
    "AlertRule",
    "Article",
    "Bias",
    "Classification",
    "FeedItem",
    "FeedSource",
    "ImpactLevel",
    "NewArticle",
    "SocialPost",
    "Storyline",
    "StorylineCategory",
    "StorylineEvent",
    "StorylineStatus",
    "UserContact",
    "impact_priority",
]
