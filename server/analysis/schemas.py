"""
Analysis Result Schemas

Validation of LLM answers and the documented fallback values. A parser
either returns a clean value or raises LLMResponseError, which the
classifier treats as a retryable failure.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from news_collector.core.types import ClusteringError, LLMResponseError
from news_collector.models.news import Bias, ImpactLevel, StorylineCategory

# ---------------------------------------------------------------------------
# Fallbacks
# ---------------------------------------------------------------------------

DEFAULT_SUMMARY: tuple[str, ...] = (
    "Summary unavailable",
    "AI analysis pending",
    "Check back later",
)
FAILED_SUMMARY: tuple[str, ...] = (
    "Analysis failed",
    "Please try again later",
    "Summary not available",
)
DEFAULT_SENTIMENT = 0.0
DEFAULT_BIAS = Bias.CENTER
DEFAULT_IMPACT = ImpactLevel.C

MAX_TAGS = 5

# Insertion order decides tag order.
DEFAULT_TAG_KEYWORDS: dict[str, str] = {
    "tariff": "Tariff",
    "immigration": "Immigration",
    "border": "Border",
    "election": "Election",
    "trial": "Trial",
    "court": "Trial",
    "indictment": "Indictment",
    "china": "China",
    "economy": "Economy",
    "stock": "DJTStock",
    "rally": "Rally",
    "vance": "Vance",
    "truth social": "TruthSocial",
}


def default_tags(title: str, content: str) -> tuple[str, ...]:
    """Keyword-derived tags used when the model gives none."""
    text = f"{title} {content}".lower()
    tags: list[str] = []
    for keyword, tag in DEFAULT_TAG_KEYWORDS.items():
        if keyword in text and tag not in tags:
            tags.append(tag)
    return tuple(tags[:MAX_TAGS])


# ---------------------------------------------------------------------------
# Per-article parsers
# ---------------------------------------------------------------------------

def parse_summary(obj: dict[str, Any]) -> tuple[str, ...]:
    value = obj.get("summary")
    if not isinstance(value, list) or len(value) != 3:
        raise LLMResponseError("summary must be a list of exactly 3 items", {"got": repr(value)[:80]})
    points = tuple(str(p).strip() for p in value if isinstance(p, str))
    if len(points) != 3 or not all(points):
        raise LLMResponseError("summary items must be non-empty strings")
    return points


def parse_sentiment(obj: dict[str, Any]) -> float:
    value = obj.get("sentiment")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise LLMResponseError("sentiment must be a number", {"got": repr(value)[:40]})
    if value != value:  # NaN
        raise LLMResponseError("sentiment must be a number", {"got": "NaN"})
    return max(-1.0, min(1.0, float(value)))


def parse_bias(obj: dict[str, Any]) -> Bias:
    value = obj.get("bias")
    if value not in (b.value for b in Bias):
        raise LLMResponseError("bias must be Left, Center or Right", {"got": repr(value)[:40]})
    return Bias(value)


def parse_impact(obj: dict[str, Any]) -> ImpactLevel:
    value = obj.get("impactLevel")
    if value not in (level.value for level in ImpactLevel):
        raise LLMResponseError("impactLevel must be S, A, B or C", {"got": repr(value)[:40]})
    return ImpactLevel(value)


def parse_tags(obj: dict[str, Any]) -> tuple[str, ...]:
    value = obj.get("tags")
    if not isinstance(value, list):
        raise LLMResponseError("tags must be a list")
    tags = [t.strip() for t in value if isinstance(t, str) and t.strip()]
    if not tags:
        raise LLMResponseError("tags must be a non-empty list of strings")
    return tuple(tags[:MAX_TAGS])


# ---------------------------------------------------------------------------
# Storylines
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StorylineGroup:
    """One proposed storyline from the clustering model."""

    title: str
    description: str
    category: StorylineCategory
    article_ids: tuple[str, ...]


def parse_storyline_groups(obj: dict[str, Any]) -> list[StorylineGroup]:
    """
    Accept {"storylines": [...]} or a bare array.

    Raises ClusteringError when neither shape is present. Malformed entries
    inside a valid array are skipped.
    """
    value = obj.get("storylines")
    if value is None:
        value = obj.get("items")
    if not isinstance(value, list):
        raise ClusteringError("Invalid storyline response format", {"keys": sorted(obj)[:5]})

    groups: list[StorylineGroup] = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        title = entry.get("title")
        ids = entry.get("articleIds")
        if not isinstance(title, str) or not title.strip() or not isinstance(ids, list):
            continue
        seen: list[str] = []
        for article_id in ids:
            if isinstance(article_id, (str, int)) and str(article_id) not in seen:
                seen.append(str(article_id))
        description = entry.get("description")
        groups.append(
            StorylineGroup(
                title=title.strip(),
                description=description.strip() if isinstance(description, str) else "",
                category=StorylineCategory.from_string(entry.get("category")),
                article_ids=tuple(seen),
            )
        )
    return groups


def parse_storyline_summary(obj: dict[str, Any]) -> str:
    value = obj.get("summary")
    if not isinstance(value, str) or not value.strip():
        raise LLMResponseError("summary must be a non-empty string")
    return value.strip()
