"""
Groq API Client

Thin async wrapper around the Groq Python SDK. Sends one JSON-mode chat
completion with a hard timeout and returns the parsed object. Retries are
the caller's job: every failure surfaces as LLMError (transport, status,
timeout) or LLMResponseError (empty, non-JSON or non-object output).
"""
from __future__ import annotations

import json
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Optional

from groq import APIError, APIStatusError, APITimeoutError, AsyncGroq

from news_collector.core.types import LLMError, LLMResponseError

logger = logging.getLogger(__name__)

MODEL = "llama-3.1-8b-instant"
TIMEOUT_S = 30.0
TEMPERATURE = 0.3


@dataclass
class UsageStats:
    """Token usage per operation, for cost tracking."""

    calls: int = 0
    failures: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    by_operation: dict[str, int] = field(default_factory=lambda: defaultdict(int))


class GroqClient:
    """
    Async Groq chat-completion client.

    Initialise once in main.py and share between the classifier and the
    storyline clusterer.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = MODEL,
        timeout_s: float = TIMEOUT_S,
        temperature: float = TEMPERATURE,
        client: Optional[AsyncGroq] = None,
    ) -> None:
        self._client = client if client is not None else AsyncGroq(api_key=api_key)
        self._model = model
        self._timeout_s = timeout_s
        self._temperature = temperature
        self._usage = UsageStats()

    @property
    def model(self) -> str:
        return self._model

    @property
    def usage(self) -> UsageStats:
        return self._usage

    async def complete_json(
        self,
        user_prompt: str,
        *,
        system_prompt: str | None = None,
        max_tokens: int = 300,
        operation: str = "completion",
    ) -> dict[str, Any]:
        """
        Send one JSON-mode request and return the parsed object.

        Raises:
            LLMError: SDK, HTTP status or timeout failure.
            LLMResponseError: empty, non-JSON or non-object output.
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        self._usage.calls += 1
        t0 = time.monotonic()
        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=self._temperature,
                max_completion_tokens=max_tokens,
                response_format={"type": "json_object"},
                stream=False,
                timeout=self._timeout_s,
            )
        except APITimeoutError as e:
            self._usage.failures += 1
            raise LLMError(f"Groq timed out after {self._timeout_s}s", {"operation": operation}) from e
        except APIStatusError as e:
            self._usage.failures += 1
            raise LLMError(
                f"Groq API error {e.status_code}: {e}", {"operation": operation}
            ) from e
        except APIError as e:
            self._usage.failures += 1
            raise LLMError(f"Groq request failed: {e}", {"operation": operation}) from e

        elapsed_ms = (time.monotonic() - t0) * 1000
        self._record_usage(completion, operation)

        raw = completion.choices[0].message.content if completion.choices else None
        if not raw:
            raise LLMResponseError("Empty response from Groq", {"operation": operation})

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            raise LLMResponseError(
                f"Groq returned invalid JSON: {e}", {"operation": operation}
            ) from e

        if isinstance(parsed, list):
            # bare arrays are legal for list-shaped answers
            parsed = {"items": parsed}
        if not isinstance(parsed, dict):
            raise LLMResponseError(
                f"Groq returned {type(parsed).__name__}, expected an object",
                {"operation": operation},
            )

        logger.debug("Groq %s completed in %.0fms", operation, elapsed_ms)
        return parsed

    def _record_usage(self, completion: Any, operation: str) -> None:
        usage = getattr(completion, "usage", None)
        if usage is None:
            return
        prompt = getattr(usage, "prompt_tokens", 0) or 0
        output = getattr(usage, "completion_tokens", 0) or 0
        self._usage.prompt_tokens += prompt
        self._usage.completion_tokens += output
        self._usage.by_operation[operation] += prompt + output
