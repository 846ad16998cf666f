"""
Content Filter

Keyword relevance test applied to every feed item before it reaches storage.
Pure function, no side effects.
"""
from __future__ import annotations

from news_collector.models import FeedItem

TRUMP_KEYWORDS: frozenset[str] = frozenset({
    "trump",
    "donald trump",
    "djt",
    "truth social",
    "maga",
    "trump 2024",
    "trump 2028",
    "mar-a-lago",
    "melania",
})


def is_relevant(
    title: str = "",
    snippet: str = "",
    content: str = "",
    keywords: frozenset[str] = TRUMP_KEYWORDS,
) -> bool:
    """True when any keyword occurs in the lowercased title, snippet or content."""
    text = f"{title} {snippet} {content}".lower()
    if not text.strip():
        return False
    return any(kw in text for kw in keywords)


def is_relevant_item(item: FeedItem, keywords: frozenset[str] = TRUMP_KEYWORDS) -> bool:
    return is_relevant(item.title, item.snippet, item.content, keywords)
