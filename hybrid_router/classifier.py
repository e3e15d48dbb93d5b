"""HybridClassifier — cascading request classification with a guaranteed answer.

Routing is decided by, in order:
  1. Rule stage → pattern / description match at MEDIUM confidence or above
  2. Intent stage → phrase cues at LOW confidence or above
  3. Sequential stage → the reasoning engine names a registered tool
  4. Fallback → the default tool with the whole request as ``query``

A later stage only runs when the earlier ones declined; the first
acceptance wins.
"""

from loguru import logger

from hybrid_router.aliases import normalize_tool_answer
from hybrid_router.config import ModelConfig, Thresholds
from hybrid_router.errors import ConfigurationError
from hybrid_router.intents import IntentDetector
from hybrid_router.models import ClassificationCandidate, EnhancedMatch, MatchMethod
from hybrid_router.reasoning import SequentialReasoner
from hybrid_router.rules import DESCRIPTION_MATCH, PatternRuleMatcher
from hybrid_router.tools import DEFAULT_TOOL, ToolRegistry, build_default_registry

SEQUENTIAL_CONFIDENCE = 0.5
FALLBACK_CONFIDENCE = 0.2
SEQUENTIAL_PATTERN = "sequential_thinking"
FALLBACK_PATTERN = "fallback"
TOOL_SELECTION_TASK = "tool_selection"


class HybridClassifier:
    """Compose rule, intent and model-assisted matching into one decision."""

    def __init__(
        self,
        registry: ToolRegistry | None = None,
        *,
        rule_matcher: PatternRuleMatcher | None = None,
        intent_detector: IntentDetector | None = None,
        reasoner: SequentialReasoner | None = None,
        thresholds: Thresholds | None = None,
        default_tool: str = DEFAULT_TOOL,
    ):
        self._registry = registry or build_default_registry()
        if default_tool not in self._registry:
            raise ConfigurationError(f"Default tool '{default_tool}' is not registered")

        self._rules = rule_matcher or PatternRuleMatcher(self._registry)
        self._intents = intent_detector or IntentDetector(self._registry)
        self._reasoner = reasoner or SequentialReasoner()
        self._thresholds = thresholds or Thresholds()
        self._default_tool = default_tool

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def thresholds(self) -> Thresholds:
        return self._thresholds

    async def classify(self, request: str, config: ModelConfig) -> EnhancedMatch:
        """Route ``request`` to a tool. Always returns a match."""
        # --- Rule stage ---
        match = self._rule_stage(request)
        if match is None:
            # --- Intent stage ---
            match = self._intent_stage(request)
        if match is None:
            # --- Sequential stage ---
            match = await self._sequential_stage(request, config)
        if match is None:
            # --- Fallback ---
            match = self._fallback(request)

        logger.info(
            f"Route: {match.method.value} → {match.tool_id} "
            f"(confidence={match.confidence:.2f}, confirm={match.requires_confirmation})"
        )
        return match

    def _rule_stage(self, request: str) -> EnhancedMatch | None:
        candidate = self._rules.match(request)
        if candidate is None or candidate.confidence < self._thresholds.medium:
            return None

        parameters: dict[str, str] = {}
        if candidate.matched_pattern and candidate.matched_pattern != DESCRIPTION_MATCH:
            parameters = self._rules.extract_parameters(request, candidate.matched_pattern)
        return EnhancedMatch.build(candidate, parameters, MatchMethod.RULE, self._thresholds.high)

    def _intent_stage(self, request: str) -> EnhancedMatch | None:
        candidate = self._intents.detect(request)
        if candidate is None or candidate.confidence < self._thresholds.low:
            return None
        parameters = self._intents.extract_context_parameters(request)
        return EnhancedMatch.build(candidate, parameters, MatchMethod.INTENT, self._thresholds.high)

    async def _sequential_stage(self, request: str, config: ModelConfig) -> EnhancedMatch | None:
        try:
            answer = await self._reasoner.run(
                self._tool_selection_prompt(request), config, task_name=TOOL_SELECTION_TASK,
            )
            tool_id = normalize_tool_answer(answer, self._registry) if isinstance(answer, str) else None
        except Exception as e:
            logger.warning(f"Sequential stage declined, model-assisted selection failed: {e}")
            return None

        if tool_id is None:
            logger.info(f"Sequential stage declined, unrecognised tool answer: {str(answer)[:120]!r}")
            return None

        candidate = ClassificationCandidate(tool_id, SEQUENTIAL_CONFIDENCE, SEQUENTIAL_PATTERN)
        parameters = self._intents.extract_context_parameters(request)
        return EnhancedMatch.build(candidate, parameters, MatchMethod.SEQUENTIAL, self._thresholds.high)

    def _fallback(self, request: str) -> EnhancedMatch:
        candidate = ClassificationCandidate(self._default_tool, FALLBACK_CONFIDENCE, FALLBACK_PATTERN)
        return EnhancedMatch.build(
            candidate, {"query": request}, MatchMethod.FALLBACK, self._thresholds.high,
        )

    def _tool_selection_prompt(self, request: str) -> str:
        options = ", ".join(self._registry.ids)
        return (
            f'Given this user request: "{request}"\n\n'
            f"What tool should I use for this request? Options are: {options}.\n\n"
            "Analyze the request and determine which tool is most appropriate. "
            "Reply with just the name of the most appropriate tool."
        )

    @staticmethod
    def explain(match: EnhancedMatch) -> str:
        """Human-readable rationale for a match."""
        if match.method is MatchMethod.RULE:
            if match.matched_pattern == DESCRIPTION_MATCH:
                return f"I chose the {match.tool_id} because keywords in your request matched its description."
            return f'I chose the {match.tool_id} because your request matched the pattern: "{match.matched_pattern}"'
        if match.method is MatchMethod.INTENT:
            return (
                f"I chose the {match.tool_id} based on the intent of your request. "
                f"I'm {round(match.confidence * 100)}% confident this is what you meant."
            )
        if match.method is MatchMethod.SEQUENTIAL:
            return f"After analyzing your request, I believe the {match.tool_id} is the most appropriate tool to use."
        if match.method is MatchMethod.FALLBACK:
            return (
                f"I wasn't sure which tool to use, so I'm defaulting to the {match.tool_id}. "
                "Please let me know if you'd prefer a different tool."
            )
        return f"I selected the {match.tool_id} based on your request."
