"""
Tests for analysis.storylines

The model is an AsyncMock; articles and storylines live in in-memory SQLite.
"""
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import delete

from analysis.storylines import StorylineClusterer
from news_collector.core.types import LLMError, StorylineNotFoundError
from news_collector.models import StorylineCategory, StorylineStatus
from news_collector.stores.schema import StorylineRow


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def llm():
    return AsyncMock()


@pytest.fixture
def clusterer(article_store, storyline_store, llm):
    return StorylineClusterer(
        articles=article_store,
        storylines=storyline_store,
        llm=llm,
        window_days=7,
        batch_limit=100,
        min_articles=3,
    )


@pytest.fixture
async def batch(article_store, new_article):
    titles = [
        "Trump sets 25% tariff on Canada",
        "Canada retaliates against Trump tariffs",
        "Trump trial date set",
        "Judge rules on Trump trial motion",
    ]
    return [await article_store.create_article(new_article(t)) for t in titles]


def _group(title, ids, category="other", description="desc"):
    return {"title": title, "description": description, "category": category, "articleIds": list(ids)}


# ── run_cycle() ──────────────────────────────────────────────────────────────

async def test_too_few_articles_skips_model(clusterer, llm, article_store, new_article):
    await article_store.create_article(new_article())

    result = await clusterer.run_cycle()

    assert result.candidates == 1
    llm.complete_json.assert_not_called()


async def test_creates_storylines_from_groups(clusterer, llm, batch, storyline_store):
    a, b, c, d = batch
    llm.complete_json.return_value = {
        "storylines": [
            _group("Canada tariff dispute", [a.id, b.id], "tariff"),
            _group("Trump trial", [c.id, d.id], "legal"),
        ]
    }

    result = await clusterer.run_cycle()

    assert result.storylines_created == 2
    assert result.articles_linked == 4
    stored = await storyline_store.list_storylines(StorylineStatus.ONGOING)
    by_title = {s.title: s for s in stored}
    assert by_title["Canada tariff dispute"].article_ids == {a.id, b.id}
    assert by_title["Trump trial"].category is StorylineCategory.LEGAL
    assert sorted(result.touched) == sorted(s.id for s in stored)


async def test_prompt_lists_every_candidate(clusterer, llm, batch):
    llm.complete_json.return_value = {"storylines": []}

    await clusterer.run_cycle()

    prompt = llm.complete_json.call_args.args[0]
    for article in batch:
        assert f"[{article.id}] {article.title}" in prompt


async def test_malformed_output_abandons_cycle(clusterer, llm, batch, storyline_store):
    llm.complete_json.return_value = {"result": "I could not find any"}

    result = await clusterer.run_cycle()

    assert result.abandoned is True
    assert await storyline_store.list_storylines() == []


async def test_llm_error_abandons_cycle(clusterer, llm, batch, storyline_store):
    llm.complete_json.side_effect = LLMError("timeout")

    result = await clusterer.run_cycle()

    assert result.abandoned is True
    assert await storyline_store.list_storylines() == []


async def test_small_and_foreign_groups_are_skipped(clusterer, llm, batch, storyline_store):
    a, b, c, d = batch
    llm.complete_json.return_value = {
        "storylines": [
            _group("Lonely", [a.id]),
            _group("Made up", ["not-in-batch", "also-fake"]),
            _group("Mixed", [c.id, "not-in-batch", d.id], "legal"),
        ]
    }

    result = await clusterer.run_cycle()

    assert result.groups_skipped == 2
    assert result.storylines_created == 1
    [storyline] = await storyline_store.list_storylines()
    assert storyline.article_ids == {c.id, d.id}


async def test_article_in_two_groups_goes_to_first(clusterer, llm, batch, storyline_store):
    a, b, c, d = batch
    llm.complete_json.return_value = {
        "storylines": [
            _group("Tariffs", [a.id, b.id, c.id], "tariff"),
            _group("Trial", [c.id, d.id], "legal"),
        ]
    }

    result = await clusterer.run_cycle()

    assert result.storylines_created == 1
    assert result.groups_skipped == 1
    [storyline] = await storyline_store.list_storylines()
    assert storyline.article_ids == {a.id, b.id, c.id}


async def test_merges_into_matching_ongoing_storyline(
    clusterer, llm, article_store, storyline_store, new_article
):
    seed = [await article_store.create_article(new_article(f"Old tariff story {i}")) for i in range(2)]
    existing = await storyline_store.create_storyline(
        title="Canada tariff dispute", description="", category=StorylineCategory.TARIFF, articles=seed
    )
    fresh = [await article_store.create_article(new_article(f"Tariff update {i}")) for i in range(3)]
    llm.complete_json.return_value = {
        "storylines": [_group("Canada tariffs escalate", [fresh[0].id, fresh[1].id], "tariff")]
    }

    result = await clusterer.run_cycle()

    assert result.storylines_merged == 1
    assert result.storylines_created == 0
    assert result.touched == [existing.id]
    merged = await storyline_store.get_storyline(existing.id)
    assert merged.event_count == 4
    assert merged.article_ids == {seed[0].id, seed[1].id, fresh[0].id, fresh[1].id}


async def test_second_cycle_ignores_clustered_articles(clusterer, llm, batch):
    a, b, c, d = batch
    llm.complete_json.return_value = {"storylines": [_group("Tariffs", [a.id, b.id], "tariff")]}
    await clusterer.run_cycle()

    result = await clusterer.run_cycle()

    assert result.candidates == 2
    assert llm.complete_json.await_count == 1


# ── summarize_storyline() ────────────────────────────────────────────────────

async def test_summarize_storyline_writes_summary(clusterer, llm, batch, storyline_store):
    a, b, _, _ = batch
    storyline = await storyline_store.create_storyline(
        title="Canada tariffs", description="", category=StorylineCategory.TARIFF, articles=[a, b]
    )
    llm.complete_json.return_value = {"summary": "Tariffs keep rising."}

    summary = await clusterer.summarize_storyline(storyline.id)

    assert summary == "Tariffs keep rising."
    assert (await storyline_store.get_storyline(storyline.id)).summary == summary
    prompt = llm.complete_json.call_args.args[0]
    assert a.title in prompt and b.title in prompt


async def test_summarize_storyline_failure_leaves_summary(clusterer, llm, batch, storyline_store):
    a, b, _, _ = batch
    storyline = await storyline_store.create_storyline(
        title="Canada tariffs", description="", category=StorylineCategory.TARIFF, articles=[a, b]
    )
    llm.complete_json.return_value = {"summary": ""}

    assert await clusterer.summarize_storyline(storyline.id) is None
    assert (await storyline_store.get_storyline(storyline.id)).summary is None


async def test_summarize_unknown_storyline(clusterer, llm):
    assert await clusterer.summarize_storyline("missing") is None
    llm.complete_json.assert_not_called()


async def test_storyline_removed_before_summary_write(clusterer, llm, batch, storyline_store, db):
    a, b, _, _ = batch
    storyline = await storyline_store.create_storyline(
        title="Canada tariffs", description="", category=StorylineCategory.TARIFF, articles=[a, b]
    )

    async def _summary_after_delete(*args, **kwargs):
        with db.session() as session:
            session.execute(delete(StorylineRow).where(StorylineRow.id == storyline.id))
        return {"summary": "Tariffs keep rising."}

    llm.complete_json.side_effect = _summary_after_delete

    assert await clusterer.summarize_storyline(storyline.id) is None


# ── refresh_summaries() ──────────────────────────────────────────────────────

async def test_refresh_summaries_continues_past_failures(clusterer, llm, batch, storyline_store, monkeypatch):
    a, b, c, d = batch
    first = await storyline_store.create_storyline(
        title="Canada tariffs", description="", category=StorylineCategory.TARIFF, articles=[a, b]
    )
    second = await storyline_store.create_storyline(
        title="Trump trial", description="", category=StorylineCategory.LEGAL, articles=[c, d]
    )
    llm.complete_json.return_value = {"summary": "Still developing."}
    real_update = storyline_store.update_summary

    async def _update(storyline_id, summary):
        if storyline_id == first.id:
            raise StorylineNotFoundError(storyline_id)
        await real_update(storyline_id, summary)

    monkeypatch.setattr(storyline_store, "update_summary", _update)

    updated = await clusterer.refresh_summaries([first.id, second.id])

    assert updated == 1
    assert (await storyline_store.get_storyline(second.id)).summary == "Still developing."


async def test_refresh_summaries_retries_missing_summaries(clusterer, llm, batch, storyline_store):
    a, b, c, d = batch
    done = await storyline_store.create_storyline(
        title="Canada tariffs", description="", category=StorylineCategory.TARIFF, articles=[a, b]
    )
    await storyline_store.update_summary(done.id, "Already summarized.")
    missing = await storyline_store.create_storyline(
        title="Trump trial", description="", category=StorylineCategory.LEGAL, articles=[c, d]
    )
    llm.complete_json.return_value = {"summary": "Trial set for spring."}

    updated = await clusterer.refresh_summaries([])

    assert updated == 1
    assert llm.complete_json.await_count == 1
    assert (await storyline_store.get_storyline(missing.id)).summary == "Trial set for spring."
    assert (await storyline_store.get_storyline(done.id)).summary == "Already summarized."
