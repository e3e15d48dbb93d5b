"""Shared fixtures: a scripted provider and a test model config."""

import json
from typing import Any

import pytest

from hybrid_router import LLMProvider, LLMResponse, ModelCallError, ModelConfig


class ScriptedProvider(LLMProvider):
    """Returns queued replies in order and records every call."""

    def __init__(self, replies: list[Any] | None = None):
        super().__init__(api_key="test", api_base="http://test")
        self.replies = list(replies or [])
        self.calls: list[dict[str, Any]] = []

    async def chat(self, messages, model=None, max_tokens=2000, temperature=0.7, response_format=None):
        self.calls.append({
            "messages": messages,
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "response_format": response_format,
        })
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(content=reply)


def thought(text: str, more: bool, number: int = 1, total: int = 5, **extra: Any) -> str:
    return json.dumps({
        "thought": text,
        "next_thought_needed": more,
        "thought_number": number,
        "total_thoughts": total,
        **extra,
    })


@pytest.fixture
def config() -> ModelConfig:
    return ModelConfig(
        base_url="http://llm.test/api/v1",
        api_key="sk-test",
        primary_model="primary-model",
        fallback_model="fallback-model",
    )


@pytest.fixture
def failing_provider() -> ScriptedProvider:
    return ScriptedProvider([ModelCallError("boom", status_code=503, body="unavailable")])
