"""
Truth Social Fetcher

Pulls recent posts from the public Mastodon-compatible API. The account's
statuses endpoint is tried first, then the public timeline. Parsed posts are
returned to the caller; nothing is kept on the instance between calls.
"""
from __future__ import annotations

import asyncio
import logging
import random
import re
from datetime import datetime, timezone
from typing import Any, Optional

import aiohttp

from news_collector.core.types import FetchError
from news_collector.models.news import ImpactLevel, SocialPost

from .rss import strip_html

logger = logging.getLogger(__name__)

SOURCE_NAME = "Truth Social"

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:123.0) Gecko/20100101 Firefox/123.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
)

IMPORTANT_KEYWORDS = (
    "announcement",
    "breaking",
    "election",
    "indictment",
    "court",
    "trial",
    "tariff",
    "china",
    "border",
    "emergency",
    "executive order",
    "i will",
    "we will",
)

TITLE_LENGTH = 100

_WHITESPACE = re.compile(r"\s+")


def social_impact_level(post: SocialPost) -> ImpactLevel:
    """Engagement first, then keywords. Account posts never rank below B."""
    engagement = post.repost_count + post.like_count
    if engagement > 50000:
        return ImpactLevel.S
    if engagement > 10000:
        return ImpactLevel.A
    if engagement > 1000:
        return ImpactLevel.B

    text = post.text.lower()
    if any(keyword in text for keyword in IMPORTANT_KEYWORDS):
        return ImpactLevel.A
    return ImpactLevel.B


def social_title(text: str) -> str:
    if len(text) > TITLE_LENGTH:
        return text[:TITLE_LENGTH] + "..."
    return text


def _parse_timestamp(raw: Any) -> Optional[datetime]:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _image_url(status: dict[str, Any]) -> Optional[str]:
    for media in status.get("media_attachments") or []:
        if media.get("type") == "image":
            return media.get("url") or media.get("preview_url")
    return None


def parse_statuses(statuses: list[dict[str, Any]], username: str) -> list[SocialPost]:
    """
    Keep the account's own original posts.

    Drops reblogs, empty posts and replies authored by someone else.
    """
    posts = []
    for status in statuses:
        if not isinstance(status, dict) or status.get("reblog"):
            continue
        if not status.get("content"):
            continue
        author = (status.get("account") or {}).get("username")
        if status.get("in_reply_to_id") and author != username:
            continue

        text = _WHITESPACE.sub(" ", strip_html(status["content"]).replace("\xa0", " ")).strip()
        published = _parse_timestamp(status.get("created_at"))
        post_id = str(status.get("id") or "")
        if not text or not post_id or published is None:
            continue

        posts.append(
            SocialPost(
                id=post_id,
                text=text,
                url=status.get("url") or f"https://truthsocial.com/@{username}/posts/{post_id}",
                published_at=published,
                image_url=_image_url(status),
                repost_count=int(status.get("reblogs_count") or 0),
                like_count=int(status.get("favourites_count") or 0),
            )
        )
    return posts


class TruthSocialFetcher:
    """Public-API reader for one Truth Social account."""

    def __init__(
        self,
        *,
        account_id: str,
        username: str = "realDonaldTrump",
        api_base: str = "https://truthsocial.com/api/v1",
        timeout_s: float = 20.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._account_id = account_id
        self._username = username
        self._api_base = api_base.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> TruthSocialFetcher:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _endpoints(self) -> list[str]:
        return [
            f"{self._api_base}/accounts/{self._account_id}/statuses?limit=40&exclude_replies=true",
            f"{self._api_base}/timelines/public?limit=40&only_media=false",
        ]

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": random.choice(USER_AGENTS),
            "Origin": "https://truthsocial.com",
            "Referer": f"https://truthsocial.com/@{self._username}",
        }

    async def fetch_posts(self) -> list[SocialPost]:
        """
        Return the latest posts from the first endpoint that yields any.

        Raises:
            FetchError: every endpoint failed or returned nothing usable.
        """
        if self._session is None:
            raise RuntimeError("Use async context manager: async with TruthSocialFetcher():")

        last_error = "no posts returned"
        for url in self._endpoints():
            try:
                async with self._session.get(
                    url, headers=self._headers(), timeout=self._timeout
                ) as resp:
                    if not 200 <= resp.status < 300:
                        last_error = f"HTTP {resp.status}"
                        logger.warning("Truth Social API returned %d for %s", resp.status, url)
                        continue
                    data = await resp.json(content_type=None)
            except asyncio.TimeoutError:
                last_error = "timed out"
                logger.warning("Truth Social API timed out: %s", url)
                continue
            except (aiohttp.ClientError, ValueError) as exc:
                last_error = str(exc)
                logger.warning("Truth Social API request failed for %s: %s", url, exc)
                continue

            if isinstance(data, list) and data:
                posts = parse_statuses(data, self._username)
                logger.info("Got %d posts from %s", len(posts), url)
                return posts

        raise FetchError(f"Truth Social API unavailable: {last_error}", SOURCE_NAME)
