"""
Source fetchers.

Re-exports:
    - RSSFetcher: aiohttp + feedparser feed reader
    - TruthSocialFetcher: Mastodon-compatible API reader
"""
from .rss import RSSFetcher, normalize_entry, strip_html
from .truth_social import (
    SOURCE_NAME as SOCIAL_SOURCE_NAME,
    TruthSocialFetcher,
    parse_statuses,
    social_impact_level,
    social_title,
)

__all__ = [
    "RSSFetcher",
    "SOCIAL_SOURCE_NAME",
    "TruthSocialFetcher",
    "normalize_entry",
    "parse_statuses",
    "social_impact_level",
    "social_title",
    "strip_html",
]
