"""
Source Registry

RSS feeds polled by the collector, each tagged with the outlet's editorial
bias. The list is configuration data; edit freely.
"""
from __future__ import annotations

import logging

from news_collector.models import Bias, FeedSource

logger = logging.getLogger(__name__)

RSS_FEEDS: tuple[FeedSource, ...] = (
    FeedSource(
        url="http://rss.cnn.com/rss/cnn_allpolitics.rss",
        source="CNN",
        bias=Bias.LEFT,
    ),
    FeedSource(
        url="https://moxie.foxnews.com/google-publisher/politics.xml",
        source="Fox News",
        bias=Bias.RIGHT,
    ),
    FeedSource(
        url="http://feeds.bbci.co.uk/news/world/us_and_canada/rss.xml",
        source="BBC",
        bias=Bias.CENTER,
    ),
    FeedSource(
        url="https://feeds.npr.org/1001/rss.xml",
        source="NPR",
        bias=Bias.LEFT,
    ),
    FeedSource(
        url="https://rss.nytimes.com/services/xml/rss/nyt/Politics.xml",
        source="NYT",
        bias=Bias.LEFT,
    ),
)


def parse_sources(
    value: str | None,
    registry: tuple[FeedSource, ...] = RSS_FEEDS,
) -> list[FeedSource]:
    '''Select feeds by comma-separated source name (case-insensitive).'''

    # If no value is provided or if "all" is specified, return all sources
    if not value or value.strip().lower() == "all":
        return list(registry)

    by_name = {feed.source.lower(): feed for feed in registry}
    parsed = [s.strip() for s in value.split(",") if s.strip() and s.strip().lower() != "all"]

    selected: list[FeedSource] = []
    for name in parsed:
        feed = by_name.get(name.lower())
        if feed is None:
            logger.warning("Invalid source: %s", name)
            continue
        if feed not in selected:
            selected.append(feed)

    if not selected:
        valid = ", ".join(sorted(feed.source for feed in registry))
        raise ValueError(f"No valid sources provided. Valid sources: {valid}")

    return selected
