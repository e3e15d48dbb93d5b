"""Tests for the request dispatcher."""

import pytest

from conftest import ScriptedProvider
from hybrid_router import (
    ConfigurationError,
    HybridClassifier,
    ModelCallError,
    ProcessedRequest,
    RequestDispatcher,
    SequentialReasoner,
    ToolResult,
)


def make_dispatcher(executors, provider=None) -> RequestDispatcher:
    provider = provider or ScriptedProvider([ModelCallError("down")])
    return RequestDispatcher(HybridClassifier(reasoner=SequentialReasoner(provider)), executors)


async def test_confident_match_is_executed(config):
    received = {}

    async def research(params):
        received.update(params)
        return ToolResult([f"Report on {params['topic']}"])

    dispatcher = make_dispatcher({"research-manager": research})
    result = await dispatcher.handle("research rust web frameworks", config)

    assert received == {"topic": "rust web frameworks"}
    assert not result.is_error
    assert result.content[0].startswith("Using research-manager:")
    assert result.content[1] == "Report on rust web frameworks"


async def test_uncertain_match_asks_for_confirmation(config):
    calls = []

    async def research(params):
        calls.append(params)
        return ToolResult(["should not run"])

    dispatcher = make_dispatcher({"research-manager": research})
    result = await dispatcher.handle("hmm, not sure where to begin", config)

    assert calls == []
    assert result.text.startswith("I'll use the research-manager for this request.")
    assert result.text.endswith("Confidence: 20%")


async def test_process_returns_explanation(config):
    dispatcher = make_dispatcher({})
    processed = await dispatcher.process("research rust web frameworks", config)
    assert processed.tool_id == "research-manager"
    assert processed.requires_confirmation is False
    assert 'matched the pattern: "research {topic}"' in processed.explanation


async def test_missing_executor_is_an_error_result():
    dispatcher = make_dispatcher({})
    processed = ProcessedRequest("prd-generator", {}, "", 0.9, False)
    result = await dispatcher.execute(processed)
    assert result.is_error
    assert "No executor found for tool: prd-generator" in result.text


async def test_executor_exception_is_an_error_result():
    async def broken(params):
        raise RuntimeError("disk full")

    dispatcher = make_dispatcher({"prd-generator": broken})
    result = await dispatcher.execute(ProcessedRequest("prd-generator", {}, "", 0.9, False))
    assert result.is_error
    assert "disk full" in result.text


def test_executor_for_unknown_tool_fails_loudly():
    async def noop(params):
        return ToolResult()

    with pytest.raises(ConfigurationError):
        make_dispatcher({"ghost-generator": noop})
