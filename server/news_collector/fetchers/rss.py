"""
RSS Fetcher

Downloads one feed with aiohttp and normalises its entries with feedparser.
Any failure to obtain a usable document becomes a FetchError tagged with the
feed's source name so the collector can log it and move on.
"""
from __future__ import annotations

import asyncio
import calendar
import html
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

import aiohttp
import feedparser

from news_collector.core.types import FetchError
from news_collector.models.news import FeedItem, FeedSource

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 300

_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")

_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; news-collector/0.1)",
    "Accept": "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8",
}


def strip_html(raw: str) -> str:
    """Drop tags, decode entities and collapse whitespace."""
    if not raw:
        return ""
    text = html.unescape(_TAG.sub(" ", raw))
    return _WHITESPACE.sub(" ", text).strip()


def _entry_datetime(entry: Any) -> Optional[datetime]:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            # feedparser normalises to UTC struct_time
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    return None


def _entry_content(entry: Any) -> str:
    blocks = entry.get("content") or []
    for block in blocks:
        value = block.get("value")
        if value:
            return value
    return entry.get("summary", "") or entry.get("description", "") or ""


def entry_image_url(entry: Any) -> Optional[str]:
    """Best-effort image from media:content, media:thumbnail or an enclosure."""
    for key in ("media_content", "media_thumbnail"):
        for media in entry.get(key) or []:
            url = media.get("url")
            if url:
                return url
    for link in entry.get("links") or []:
        if link.get("rel") == "enclosure" and str(link.get("type", "")).startswith("image/"):
            return link.get("href")
    return None


def normalize_entry(entry: Any, *, now: Optional[datetime] = None) -> Optional[FeedItem]:
    """
    Convert one feedparser entry into a FeedItem.

    Returns None for entries without a link, which cannot be deduplicated.
    """
    link = (entry.get("link") or "").strip()
    if not link:
        return None

    content = strip_html(_entry_content(entry))
    snippet = strip_html(entry.get("summary", "") or "")[:SNIPPET_LENGTH]
    published = _entry_datetime(entry) or now or datetime.now(timezone.utc)

    return FeedItem(
        title=strip_html(entry.get("title", "")) or "Untitled",
        link=link,
        content=content or snippet,
        snippet=snippet,
        published_at=published,
        image_url=entry_image_url(entry),
    )


class RSSFetcher:
    """
    Feed downloader bound to one aiohttp session.

    Use as an async context manager, or pass a session owned by the caller.
    """

    def __init__(
        self,
        *,
        timeout_s: float = 20.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> RSSFetcher:
        if self._session is None:
            self._session = aiohttp.ClientSession(headers=_HEADERS)
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch(self, feed: FeedSource) -> list[FeedItem]:
        """
        Download and parse one feed.

        Raises:
            FetchError: network error, timeout, non-2xx status or a document
                feedparser cannot make sense of.
        """
        if self._session is None:
            raise RuntimeError("Use async context manager: async with RSSFetcher():")

        try:
            async with self._session.get(feed.url, timeout=self._timeout) as resp:
                if not 200 <= resp.status < 300:
                    raise FetchError(
                        f"HTTP {resp.status}", feed.source, feed.url, {"status": resp.status}
                    )
                body = await resp.read()
        except asyncio.TimeoutError as exc:
            raise FetchError("Timed out", feed.source, feed.url) from exc
        except aiohttp.ClientError as exc:
            raise FetchError(f"Request failed: {exc}", feed.source, feed.url) from exc

        parsed = feedparser.parse(body)
        if parsed.get("bozo") and not parsed.get("entries"):
            reason = parsed.get("bozo_exception")
            raise FetchError(f"Unparseable feed: {reason}", feed.source, feed.url)

        now = datetime.now(timezone.utc)
        items = []
        for entry in parsed.get("entries", []):
            item = normalize_entry(entry, now=now)
            if item is not None:
                items.append(item)

        logger.debug(
            "Feed parsed",
            extra={"source": feed.source, "entries": len(parsed.get("entries", [])), "items": len(items)},
        )
        return items
