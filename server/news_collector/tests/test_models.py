"""
Tests for news_collector.models and news_collector.sources
"""
from datetime import datetime, timezone

import pytest

from news_collector.models import (
    AlertRule,
    Bias,
    Classification,
    FeedItem,
    ImpactLevel,
    StorylineCategory,
    UserContact,
    impact_priority,
)
from news_collector.sources import RSS_FEEDS, parse_sources


# ── ImpactLevel ──────────────────────────────────────────────────────────────

def test_impact_priority_ordering():
    assert ImpactLevel.S.priority > ImpactLevel.A.priority > ImpactLevel.B.priority > ImpactLevel.C.priority


@pytest.mark.parametrize("value, expected", [("s", 4), (" A ", 3), ("b", 2), ("C", 1), ("X", 1), (None, 1)])
def test_impact_priority_from_strings(value, expected):
    assert impact_priority(value) == expected


def test_impact_from_string_rejects_unknown():
    assert ImpactLevel.from_string("a") is ImpactLevel.A
    assert ImpactLevel.from_string("Z") is None
    assert ImpactLevel.from_string(3) is None


def test_bias_from_string_is_case_insensitive():
    assert Bias.from_string("left") is Bias.LEFT
    assert Bias.from_string(" CENTER ") is Bias.CENTER
    assert Bias.from_string("far-right") is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("tariff", StorylineCategory.TARIFF),
        ("Foreign Policy", StorylineCategory.FOREIGN_POLICY),
        ("domestic-policy", StorylineCategory.DOMESTIC_POLICY),
        ("sports", StorylineCategory.OTHER),
        (None, StorylineCategory.OTHER),
    ],
)
def test_storyline_category_from_string(value, expected):
    assert StorylineCategory.from_string(value) is expected


# ── validation ───────────────────────────────────────────────────────────────

def test_feed_item_requires_aware_datetime():
    with pytest.raises(ValueError, match="timezone-aware"):
        FeedItem(title="t", link="l", content="", snippet="", published_at=datetime(2025, 1, 1))


def test_classification_rejects_out_of_range_sentiment():
    with pytest.raises(ValueError, match="sentiment"):
        Classification(summary=("a",), sentiment=1.5, bias=Bias.CENTER, impact_level=ImpactLevel.C)


def test_alert_rule_channels_in_fixed_order():
    rule = AlertRule(
        id="a1",
        user_id="u1",
        keyword="tariff",
        min_impact=ImpactLevel.B,
        notify_push=True,
        notify_email=False,
        notify_discord=True,
        user=UserContact(id="u1"),
    )
    assert rule.channels == ("push", "discord")


def test_user_contact_to_dict_uses_camel_case():
    contact = UserContact(id="u1", email="a@b.c", push_subscription={"endpoint": "x"})
    assert contact.to_dict() == {
        "id": "u1",
        "email": "a@b.c",
        "pushSubscription": {"endpoint": "x"},
        "discordWebhook": None,
    }


# ── parse_sources() ──────────────────────────────────────────────────────────

@pytest.mark.parametrize("value", [None, "", "all", " ALL "])
def test_parse_sources_defaults_to_all(value):
    assert parse_sources(value) == list(RSS_FEEDS)


def test_parse_sources_selects_by_name_and_dedupes():
    selected = parse_sources("bbc, CNN,bbc")
    assert [f.source for f in selected] == ["BBC", "CNN"]


def test_parse_sources_skips_unknown_names():
    assert [f.source for f in parse_sources("NPR,Reuters")] == ["NPR"]


def test_parse_sources_raises_when_nothing_valid():
    with pytest.raises(ValueError, match="No valid sources"):
        parse_sources("Reuters,AP")


def test_registry_sources_carry_bias():
    assert all(isinstance(feed.bias, Bias) for feed in RSS_FEEDS)
    assert {feed.source for feed in RSS_FEEDS} >= {"CNN", "Fox News", "BBC"}


def test_published_at_utc_roundtrip():
    item = FeedItem(
        title="t",
        link="l",
        content="",
        snippet="",
        published_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    assert item.image_url is None
