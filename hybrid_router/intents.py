"""Second classifier stage: weighted intent cues.

Looser than the rule matcher: scores weighted phrase cues per tool and
pulls parameters out of the request's context (quoted spans, "about X"
phrases) rather than out of pattern slots.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Mapping

from loguru import logger

from hybrid_router.errors import ConfigurationError
from hybrid_router.models import ClassificationCandidate
from hybrid_router.rules import normalize_request

if TYPE_CHECKING:
    from hybrid_router.tools import ToolRegistry

# Kept strictly below the rule matcher's templated-pattern score.
INTENT_MAX_CONFIDENCE = 0.75
INTENT_BASE_CONFIDENCE = 0.25

# tool id -> (cue phrase, weight)
INTENT_CUES: dict[str, tuple[tuple[str, float], ...]] = {
    "research-manager": (
        ("research", 0.3),
        ("tell me about", 0.3),
        ("learn about", 0.3),
        ("find out", 0.25),
        ("information", 0.2),
        ("trends", 0.2),
        ("compare", 0.2),
        ("best practices", 0.2),
        ("latest", 0.15),
        ("market", 0.15),
    ),
    "prd-generator": (
        ("prd", 0.4),
        ("product requirements", 0.4),
        ("requirements", 0.3),
        ("product spec", 0.3),
        ("specification", 0.25),
        ("feature list", 0.2),
    ),
    "user-stories-generator": (
        ("user stories", 0.4),
        ("user story", 0.4),
        ("as a user", 0.3),
        ("acceptance criteria", 0.3),
        ("personas", 0.2),
    ),
    "task-list-generator": (
        ("task list", 0.4),
        ("break down", 0.25),
        ("breakdown", 0.25),
        ("tasks", 0.25),
        ("todo", 0.25),
        ("to-do", 0.25),
        ("roadmap", 0.2),
        ("sprint", 0.2),
        ("milestones", 0.2),
    ),
    "rules-generator": (
        ("coding standards", 0.4),
        ("rules", 0.3),
        ("guidelines", 0.3),
        ("conventions", 0.25),
        ("linting", 0.2),
    ),
    "fullstack-starter-kit-generator": (
        ("starter kit", 0.4),
        ("boilerplate", 0.35),
        ("scaffold", 0.35),
        ("tech stack", 0.3),
        ("new project", 0.25),
        ("template", 0.2),
    ),
    "workflow-manager": (
        ("workflow", 0.35),
        ("orchestrate", 0.3),
        ("pipeline", 0.25),
        ("end to end", 0.2),
    ),
}

_QUOTED_RE = re.compile(r'"([^"]+)"|“([^”]+)”|(?:^|\s)\'([^\']+)\'(?=\s|$|[.,!?])')
_TOPIC_RE = re.compile(r"\b(?:about|regarding|on|for)\s+(.+)$", re.IGNORECASE)
_FOR_RE = re.compile(r"\bfor\s+(.+)$", re.IGNORECASE)


def _cue_regex(phrase: str) -> re.Pattern[str]:
    return re.compile(r"\b" + re.escape(phrase) + r"\b", re.IGNORECASE)


class IntentDetector:
    """Infer a probable tool from weighted phrase cues."""

    def __init__(
        self,
        registry: ToolRegistry,
        cues: Mapping[str, tuple[tuple[str, float], ...]] | None = None,
    ) -> None:
        cues = INTENT_CUES if cues is None else cues
        unknown = [tool_id for tool_id in cues if tool_id not in registry]
        if unknown:
            raise ConfigurationError(f"Intent cues reference unknown tools: {', '.join(unknown)}")

        # Registry order is the tie-breaker.
        self._cues = [
            (tool_id, [(phrase, weight, _cue_regex(phrase)) for phrase, weight in cues[tool_id]])
            for tool_id in registry.ids
            if tool_id in cues
        ]

    def detect(self, request: str) -> ClassificationCandidate | None:
        text = normalize_request(request)
        if not text:
            return None

        best: tuple[str, float, str] | None = None
        for tool_id, cues in self._cues:
            score = 0.0
            strongest: tuple[str, float] | None = None
            for phrase, weight, regex in cues:
                if regex.search(text):
                    score += weight
                    if strongest is None or weight > strongest[1]:
                        strongest = (phrase, weight)
            if strongest is not None and (best is None or score > best[1]):
                best = (tool_id, score, strongest[0])

        if best is None:
            return None

        tool_id, score, cue = best
        confidence = round(min(INTENT_MAX_CONFIDENCE, INTENT_BASE_CONFIDENCE + score), 4)
        logger.debug(f"Intent match: {tool_id} (cue='{cue}', score={score:.2f}, confidence={confidence:.2f})")
        return ClassificationCandidate(tool_id, confidence, f"intent:{cue}")

    @staticmethod
    def extract_context_parameters(request: str) -> dict[str, str]:
        """Pull a ``query`` (and, when present, ``productDescription``) from context.

        ``query`` is the longest quoted span, else the phrase following
        "about/regarding/on/for", else the whole normalized request.
        """
        text = normalize_request(request)
        params: dict[str, str] = {}

        quoted = [next(g for g in m.groups() if g) for m in _QUOTED_RE.finditer(text)]
        quoted = [q.strip() for q in quoted if q.strip()]
        if quoted:
            params["query"] = max(quoted, key=len)
        else:
            m = _TOPIC_RE.search(text)
            params["query"] = m.group(1).strip() if m else text

        m = _FOR_RE.search(text)
        if m:
            params["productDescription"] = m.group(1).strip()
        return params
