"""
Groq Prompt Templates

Versioned prompts for article analysis and storyline clustering. Each
analysis asks for a single small JSON object so the response can be
validated field by field.
"""
from __future__ import annotations

from typing import Iterable, Sequence

PROMPT_VERSION = "v1"

SUMMARY_CONTENT_CHARS = 2000
ANALYSIS_CONTENT_CHARS = 2000
TAGS_CONTENT_CHARS = 1500

CATEGORIES = (
    "tariff",
    "legal",
    "election",
    "foreign_policy",
    "domestic_policy",
    "personnel",
    "media",
    "other",
)

# ---------------------------------------------------------------------------
# Per-article analyses
# ---------------------------------------------------------------------------

SUMMARY_PROMPT = (
    "Summarise the following news article as exactly three short bullet points.\n"
    "\n"
    "Rules:\n"
    "- Each point is one factual sentence of at most 20 words.\n"
    "- No exclamation or question marks, no hedging language.\n"
    "- Prefer concrete numbers, names and dates.\n"
    "- The third point states the likely impact or what happens next.\n"
    "\n"
    "Title: {title}\n"
    "Body: {content}\n"
    "\n"
    'Output JSON only: {{"summary": ["point 1", "point 2", "point 3"]}}'
)

SENTIMENT_PROMPT = (
    "Rate the tone of this article from -1.0 (very negative) to +1.0 "
    "(very positive).\n"
    "\n"
    "Article: {content}\n"
    "\n"
    'Output JSON only: {{"sentiment": 0.5}}'
)

BIAS_PROMPT = (
    "Judge the political leaning of this article.\n"
    '- "Left": left-leaning\n'
    '- "Center": neutral\n'
    '- "Right": right-leaning\n'
    "\n"
    "Article: {content}\n"
    "\n"
    'Output JSON only: {{"bias": "Center"}}'
)

IMPACT_PROMPT = (
    "Rate how urgent this news is:\n"
    "- S: critical (election results, arrests, major statements)\n"
    "- A: important (policy announcements, court developments)\n"
    "- B: moderate (approval ratings, media appearances)\n"
    "- C: background (routine remarks, rehashed coverage)\n"
    "\n"
    "Title: {title}\n"
    "\n"
    'Output JSON only: {{"impactLevel": "A"}}'
)

TAGS_PROMPT = (
    "Extract 3 to 5 topic tags from this news article. Tags are English "
    "words or phrases in PascalCase without spaces.\n"
    "Common tags: Tariff, Immigration, Election, Trial, Economy, China, Border, "
    "Rally, Indictment, TruthSocial, Vance, DJTStock\n"
    "\n"
    "Title: {title}\n"
    "Body: {content}\n"
    "\n"
    'Output JSON only: {{"tags": ["Tariff", "China", "Economy"]}}'
)


def _trim(text: str, limit: int) -> str:
    text = (text or "").strip()
    return text[:limit]


def build_summary_prompt(title: str, content: str) -> str:
    return SUMMARY_PROMPT.format(title=title, content=_trim(content, SUMMARY_CONTENT_CHARS))


def build_sentiment_prompt(content: str) -> str:
    return SENTIMENT_PROMPT.format(content=_trim(content, ANALYSIS_CONTENT_CHARS))


def build_bias_prompt(content: str) -> str:
    return BIAS_PROMPT.format(content=_trim(content, ANALYSIS_CONTENT_CHARS))


def build_impact_prompt(title: str) -> str:
    return IMPACT_PROMPT.format(title=title)


def build_tags_prompt(title: str, content: str) -> str:
    return TAGS_PROMPT.format(title=title, content=_trim(content, TAGS_CONTENT_CHARS))


# ---------------------------------------------------------------------------
# Storylines
# ---------------------------------------------------------------------------

STORYLINE_SYSTEM_PROMPT = (
    "You are a news analyst. Identify ongoing storylines in Trump-related "
    "news and group related articles together.\n"
    "\n"
    "Each storyline has:\n"
    "- title: short English title (max 50 chars)\n"
    "- description: one or two sentences\n"
    f"- category: one of {', '.join(CATEGORIES)}\n"
    "- articleIds: ids of the articles that belong to it\n"
    "\n"
    "Rules:\n"
    "- Only include storylines with 2 or more articles.\n"
    "- An article belongs to at most one storyline.\n"
    "- Use only ids from the list you are given.\n"
    '- Output JSON only: {"storylines": [{"title": "...", "description": "...", '
    '"category": "...", "articleIds": ["..."]}]}'
)

STORYLINE_SUMMARY_SYSTEM_PROMPT = (
    "Summarise the current state of this ongoing story in 2-3 sentences, "
    "based on the timeline of headlines.\n"
    'Output JSON only: {"summary": "..."}'
)


def build_storyline_prompt(lines: Iterable[tuple[str, str]]) -> str:
    """One `[id] title` line per candidate article."""
    listing = "\n".join(f"[{article_id}] {title}" for article_id, title in lines)
    return f"Identify storylines from these articles:\n\n{listing}"


def build_storyline_summary_prompt(title: str, timeline: Sequence[tuple[str, str]]) -> str:
    """`timeline` is (iso timestamp, headline) pairs, oldest first."""
    events = "\n".join(f"- {ts}: {headline}" for ts, headline in timeline)
    return f"Storyline: {title}\n\nTimeline:\n{events}"
