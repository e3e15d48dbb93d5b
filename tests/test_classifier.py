"""Tests for the hybrid classifier cascade."""

import pytest

from conftest import ScriptedProvider, thought
from hybrid_router import (
    ClassificationCandidate,
    ConfigurationError,
    EnhancedMatch,
    HybridClassifier,
    MatchMethod,
    ModelCallError,
    SequentialReasoner,
    Thresholds,
)


def make_classifier(provider: ScriptedProvider, **kwargs) -> HybridClassifier:
    return HybridClassifier(reasoner=SequentialReasoner(provider), **kwargs)


async def test_exact_pattern_is_routed_by_rules(config):
    provider = ScriptedProvider()
    classifier = make_classifier(provider)
    match = await classifier.classify("research the latest advancements in quantum computing", config)

    assert match.method is MatchMethod.RULE
    assert match.tool_id == "research-manager"
    assert match.matched_pattern == "research {topic}"
    assert match.requires_confirmation is False
    assert match.parameters == {"topic": "the latest advancements in quantum computing"}
    assert provider.calls == []


async def test_description_match_needs_confirmation_and_has_no_slots(config):
    classifier = make_classifier(ScriptedProvider())
    match = await classifier.classify("I need guidelines and conventions for our coding style", config)
    assert match.method is MatchMethod.RULE
    assert match.tool_id == "rules-generator"
    assert match.parameters == {}
    assert match.requires_confirmation is True


async def test_intent_stage(config):
    provider = ScriptedProvider()
    classifier = make_classifier(provider)
    match = await classifier.classify("I'd like a roadmap with milestones and a sprint plan", config)
    assert match.method is MatchMethod.INTENT
    assert match.tool_id == "task-list-generator"
    assert match.requires_confirmation is True
    assert "query" in match.parameters
    assert provider.calls == []


async def test_sequential_stage_names_tool(config):
    provider = ScriptedProvider([thought("task-list-generator", more=False)])
    classifier = make_classifier(provider)
    request = "hmm, not sure where to begin with this one"
    match = await classifier.classify(request, config)

    assert match.method is MatchMethod.SEQUENTIAL
    assert match.tool_id == "task-list-generator"
    assert match.confidence == 0.5
    assert match.requires_confirmation is True
    assert match.parameters == {"query": request}

    prompt = provider.calls[0]["messages"][1]["content"]
    for tool_id in classifier.registry.ids:
        assert tool_id in prompt


async def test_sequential_answer_with_label_prefix(config):
    provider = ScriptedProvider([thought("Tool: PRD-Generator\nIt fits best.", more=False)])
    match = await make_classifier(provider).classify("hmm, not sure where to begin", config)
    assert match.tool_id == "prd-generator"
    assert match.method is MatchMethod.SEQUENTIAL


async def test_model_failure_falls_back(config, failing_provider):
    request = "hmm, not sure where to begin with this one"
    match = await make_classifier(failing_provider).classify(request, config)

    assert match.method is MatchMethod.FALLBACK
    assert match.tool_id == "research-manager"
    assert match.confidence == 0.2
    assert match.requires_confirmation is True
    assert match.parameters == {"query": request}


async def test_unrecognised_answer_falls_back(config):
    provider = ScriptedProvider([thought("I honestly have no idea", more=False)])
    match = await make_classifier(provider).classify("hmm, not sure", config)
    assert match.method is MatchMethod.FALLBACK


async def test_custom_default_tool(config, failing_provider):
    classifier = make_classifier(failing_provider, default_tool="workflow-manager")
    match = await classifier.classify("hmm", config)
    assert match.tool_id == "workflow-manager"


def test_unregistered_default_tool_fails_loudly():
    with pytest.raises(ConfigurationError):
        HybridClassifier(default_tool="ghost-manager")


@pytest.mark.parametrize("request_text", [
    "",
    "   ",
    "research",
    "?!?!",
    "创建一个任务列表",
    "research the latest advancements in quantum computing",
    "I'd like a roadmap with milestones",
])
async def test_classify_is_total(config, request_text):
    provider = ScriptedProvider([ModelCallError("down")])
    match = await make_classifier(provider).classify(request_text, config)
    assert isinstance(match, EnhancedMatch)
    assert 0.0 <= match.confidence <= 1.0


async def test_lowering_threshold_only_turns_rejections_into_acceptances(config):
    request = "show me a template"  # single weak intent cue, confidence 0.45
    accepted = []
    for low in (0.6, 0.5, 0.45, 0.4, 0.2, 0.0):
        provider = ScriptedProvider([ModelCallError("down")])
        classifier = make_classifier(provider, thresholds=Thresholds(high=0.8, medium=0.6, low=low))
        match = await classifier.classify(request, config)
        accepted.append(match.method is MatchMethod.INTENT)

    assert accepted == sorted(accepted)
    assert accepted[0] is False
    assert accepted[-1] is True


def test_thresholds_are_validated():
    with pytest.raises(ConfigurationError):
        Thresholds(high=0.8, medium=0.6, low=0.9)
    with pytest.raises(ConfigurationError):
        Thresholds(high=1.5)


def _match(method: MatchMethod, pattern: str, confidence: float = 0.9) -> EnhancedMatch:
    return EnhancedMatch.build(
        ClassificationCandidate("prd-generator", confidence, pattern), {}, method, 0.8,
    )


def test_explain_rule_pattern():
    text = HybridClassifier.explain(_match(MatchMethod.RULE, "prd for {productDescription}"))
    assert text == 'I chose the prd-generator because your request matched the pattern: "prd for {productDescription}"'


def test_explain_rule_description():
    text = HybridClassifier.explain(_match(MatchMethod.RULE, "description_match", 0.7))
    assert "keywords in your request matched its description" in text


def test_explain_intent_reports_percentage():
    text = HybridClassifier.explain(_match(MatchMethod.INTENT, "intent:prd", 0.65))
    assert "65% confident" in text


def test_explain_sequential_and_fallback():
    assert "After analyzing your request" in HybridClassifier.explain(
        _match(MatchMethod.SEQUENTIAL, "sequential_thinking", 0.5)
    )
    assert "defaulting to the prd-generator" in HybridClassifier.explain(
        _match(MatchMethod.FALLBACK, "fallback", 0.2)
    )


@pytest.mark.parametrize("reply", [
    42,
    [{"type": "text", "text": "no idea"}],
    '{"thought": "still thinking", "next_thought_needed": false, "thought_number": 1, "total_thoughts": Infinity}',
    '{"thought": "still thinking", "next_thought_needed": true, "thought_number": NaN, "total_thoughts": 2}',
])
async def test_odd_model_replies_fall_back(config, reply):
    provider = ScriptedProvider([reply])
    match = await make_classifier(provider).classify("hmm, not sure", config)
    assert match.method is MatchMethod.FALLBACK
    assert match.tool_id == "research-manager"
    assert len(provider.calls) == 1
