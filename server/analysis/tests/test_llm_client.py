"""
Tests for analysis.llm_client

The AsyncGroq SDK client is an AsyncMock; no network access.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from groq import APIConnectionError, APITimeoutError, RateLimitError

from analysis.llm_client import GroqClient
from news_collector.core.types import LLMError, LLMResponseError


def _completion(content, prompt_tokens=12, completion_tokens=8):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


_REQUEST = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def sdk():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion('{"sentiment": 0.4}'))
    return client


@pytest.fixture
def llm(sdk):
    return GroqClient(client=sdk, model="test-model", timeout_s=5.0, temperature=0.3)


# ── complete_json() ──────────────────────────────────────────────────────────

async def test_complete_json_returns_object_and_sends_json_mode(llm, sdk):
    result = await llm.complete_json("Rate this", system_prompt="You are terse", max_tokens=50, operation="sentiment")

    assert result == {"sentiment": 0.4}
    kwargs = sdk.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["max_completion_tokens"] == 50
    assert kwargs["timeout"] == 5.0
    assert kwargs["messages"] == [
        {"role": "system", "content": "You are terse"},
        {"role": "user", "content": "Rate this"},
    ]


async def test_usage_is_tracked_per_operation(llm):
    await llm.complete_json("a", operation="sentiment")
    await llm.complete_json("b", operation="bias")

    assert llm.usage.calls == 2
    assert llm.usage.prompt_tokens == 24
    assert llm.usage.completion_tokens == 16
    assert llm.usage.by_operation["sentiment"] == 20


async def test_bare_array_is_wrapped(llm, sdk):
    sdk.chat.completions.create.return_value = _completion('[{"title": "x"}]')
    assert await llm.complete_json("p") == {"items": [{"title": "x"}]}


@pytest.mark.parametrize("content", [None, "", "not json", '"just a string"', "42"])
async def test_unusable_output_raises_response_error(llm, sdk, content):
    sdk.chat.completions.create.return_value = _completion(content)
    with pytest.raises(LLMResponseError):
        await llm.complete_json("p")


async def test_timeout_maps_to_llm_error(llm, sdk):
    sdk.chat.completions.create.side_effect = APITimeoutError(request=_REQUEST)

    with pytest.raises(LLMError, match="timed out"):
        await llm.complete_json("p")
    assert llm.usage.failures == 1


async def test_status_error_maps_to_llm_error(llm, sdk):
    response = httpx.Response(429, request=_REQUEST)
    sdk.chat.completions.create.side_effect = RateLimitError("slow down", response=response, body=None)

    with pytest.raises(LLMError, match="429"):
        await llm.complete_json("p")


async def test_connection_error_maps_to_llm_error(llm, sdk):
    sdk.chat.completions.create.side_effect = APIConnectionError(request=_REQUEST)

    with pytest.raises(LLMError, match="request failed"):
        await llm.complete_json("p")
