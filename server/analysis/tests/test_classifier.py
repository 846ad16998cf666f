"""
Tests for analysis.classifier

The Groq client is replaced with an AsyncMock routed by operation name;
the article store is in-memory SQLite. Backoff sleeps are recorded, not
awaited for real.
"""
from unittest.mock import AsyncMock

import pytest

from analysis.classifier import ArticleClassifier
from analysis.schemas import (
    DEFAULT_BIAS,
    DEFAULT_IMPACT,
    DEFAULT_SENTIMENT,
    DEFAULT_SUMMARY,
    FAILED_SUMMARY,
)
from news_collector.core.types import LLMError, LLMResponseError
from news_collector.models import Bias, ImpactLevel

GOOD_ANSWERS = {
    "summary": {"summary": ["Tariffs rise", "China responds", "Markets dip"]},
    "sentiment": {"sentiment": -0.5},
    "bias": {"bias": "Right"},
    "impact": {"impactLevel": "A"},
    "tags": {"tags": ["Tariff", "China"]},
}


def _routed_llm(answers):
    """AsyncMock whose complete_json answers per `operation` kwarg.

    A value that is an exception (or a list of values / exceptions consumed
    in order) is raised / returned accordingly.
    """
    queues = {op: (list(v) if isinstance(v, list) else [v]) for op, v in answers.items()}

    async def _complete(prompt, *, system_prompt=None, max_tokens=300, operation="completion"):
        queue = queues[operation]
        value = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(value, BaseException):
            raise value
        return value

    llm = AsyncMock()
    llm.complete_json.side_effect = _complete
    return llm


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
async def article(article_store, new_article):
    return await article_store.create_article(
        new_article("Trump raises China tariff", content="New tariff on Chinese steel and the economy.")
    )


def _classifier(store, llm, sleep, max_retries=3):
    return ArticleClassifier(store=store, llm=llm, max_retries=max_retries, backoff_base_s=1.0, sleep=sleep)


# ── classify() ───────────────────────────────────────────────────────────────

async def test_classify_writes_all_fields(article_store, article, sleep):
    classifier = _classifier(article_store, _routed_llm(GOOD_ANSWERS), sleep)

    updated = await classifier.classify(article.id)

    assert updated.summary == ("Tariffs rise", "China responds", "Markets dip")
    assert updated.sentiment == pytest.approx(-0.5)
    assert updated.bias is Bias.RIGHT
    assert updated.impact_level is ImpactLevel.A
    assert updated.tags == ("Tariff", "China")
    assert updated.analyzed_at is not None
    assert classifier.stats.articles_classified == 1
    sleep.assert_not_awaited()


async def test_classify_persists_result(article_store, article, sleep):
    classifier = _classifier(article_store, _routed_llm(GOOD_ANSWERS), sleep)
    await classifier.classify(article.id)

    stored = await article_store.get_article(article.id)
    assert stored.impact_level is ImpactLevel.A
    assert await article_store.list_unanalyzed() == []


async def test_all_sub_analyses_failing_yields_defaults(article_store, article, sleep):
    down = LLMError("Groq timed out")
    llm = _routed_llm({op: down for op in GOOD_ANSWERS})
    classifier = _classifier(article_store, llm, sleep)

    updated = await classifier.classify(article.id)

    assert updated.summary == DEFAULT_SUMMARY
    assert updated.sentiment == DEFAULT_SENTIMENT
    assert updated.bias is DEFAULT_BIAS
    assert updated.impact_level is DEFAULT_IMPACT
    assert updated.tags == ("Tariff", "China", "Economy")
    assert llm.complete_json.await_count == 5 * 3
    assert classifier.stats.fallbacks_used == 5


async def test_defaults_are_deterministic(article_store, new_article, sleep):
    down = LLMError("down")
    results = []
    for _ in range(2):
        stored = await article_store.create_article(new_article("Trump border visit", content="At the border."))
        classifier = _classifier(article_store, _routed_llm({op: down for op in GOOD_ANSWERS}), sleep)
        results.append(await classifier.analyze(stored))

    assert results[0] == results[1]


async def test_retry_recovers_and_backs_off(article_store, article, sleep):
    answers = dict(GOOD_ANSWERS)
    answers["sentiment"] = [LLMError("429"), LLMResponseError("not a number"), {"sentiment": 0.25}]
    classifier = _classifier(article_store, _routed_llm(answers), sleep)

    updated = await classifier.classify(article.id)

    assert updated.sentiment == pytest.approx(0.25)
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]
    assert classifier.stats.fallbacks_used == 0


async def test_no_sleep_after_last_attempt(article_store, article, sleep):
    answers = dict(GOOD_ANSWERS)
    answers["impact"] = LLMError("down")
    classifier = _classifier(article_store, _routed_llm(answers), sleep, max_retries=3)

    await classifier.classify(article.id)

    assert sleep.await_count == 2


async def test_malformed_output_falls_back_per_field(article_store, article, sleep):
    answers = dict(GOOD_ANSWERS)
    answers["summary"] = {"summary": ["only one"]}
    answers["bias"] = {"bias": "Far Left"}
    classifier = _classifier(article_store, _routed_llm(answers), sleep)

    updated = await classifier.classify(article.id)

    assert updated.summary == DEFAULT_SUMMARY
    assert updated.bias is DEFAULT_BIAS
    assert updated.impact_level is ImpactLevel.A


async def test_missing_article_returns_none_without_write(sleep):
    store = AsyncMock()
    store.get_article.return_value = None
    llm = _routed_llm(GOOD_ANSWERS)
    classifier = _classifier(store, llm, sleep)

    assert await classifier.classify("gone") is None
    store.update_classification.assert_not_called()
    llm.complete_json.assert_not_called()
    assert classifier.stats.articles_missing == 1


async def test_unexpected_failure_writes_failure_fallback(article_store, article, sleep):
    llm = AsyncMock()
    llm.complete_json.side_effect = RuntimeError("boom")
    classifier = _classifier(article_store, llm, sleep)

    assert await classifier.classify(article.id) is None

    stored = await article_store.get_article(article.id)
    assert stored.summary == FAILED_SUMMARY
    assert stored.sentiment == 0.0
    assert stored.impact_level is ImpactLevel.C
    assert stored.analyzed_at is not None
    assert classifier.stats.articles_failed == 1
