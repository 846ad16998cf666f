"""
Deduplication

Stable fingerprints for incoming items and the existence pre-check against
the article store.

The pre-check alone cannot close the race between two concurrent collection
cycles, so the store also enforces unique url / fingerprint columns and turns
a constraint violation into DuplicateArticleError. Both paths count as
"duplicate, skip".
"""
from __future__ import annotations

import hashlib
import logging
import re
from typing import TYPE_CHECKING
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

if TYPE_CHECKING:
    from news_collector.stores import ArticleStore

logger = logging.getLogger(__name__)

_TRACKING_PARAMS = frozenset({"fbclid", "gclid", "cmpid", "ref", "ref_src", "ftag", "taid"})
_WHITESPACE = re.compile(r"\s+")


def canonical_url(url: str) -> str:
    """
    Normalise a URL so trivially different links to the same article collide.

    Lowercases scheme and host, drops the fragment, utm_* and common
    tracking parameters, default ports and a trailing slash.
    """
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if parts.port and not (
        (scheme == "http" and parts.port == 80) or (scheme == "https" and parts.port == 443)
    ):
        host = f"{host}:{parts.port}"

    query = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if not k.lower().startswith("utm_") and k.lower() not in _TRACKING_PARAMS
    ]
    path = parts.path
    if len(path) > 1:
        path = path.rstrip("/")

    return urlunsplit((scheme, host, path, urlencode(sorted(query)), ""))


def normalize_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip().lower()


def fingerprint_url(url: str) -> str:
    """sha256 of the canonical URL."""
    return hashlib.sha256(canonical_url(url).encode("utf-8")).hexdigest()


def fingerprint_text(text: str) -> str:
    """sha256 of the normalised text, for items without a reliable URL."""
    return hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()


class Deduplicator:
    """Exact-match existence check by fingerprint."""

    def __init__(self, store: ArticleStore) -> None:
        self._store = store

    async def is_duplicate(self, fingerprint: str) -> bool:
        existing = await self._store.find_by_fingerprint(fingerprint)
        if existing is not None:
            logger.debug(
                "Duplicate fingerprint",
                extra={"fingerprint": fingerprint[:12], "article_id": existing.id},
            )
            return True
        return False
