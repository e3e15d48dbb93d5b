"""hybrid-router: cascading request classification with sequential reasoning fallback."""

__version__ = "0.1.0"

from hybrid_router.models import (
    ClassificationCandidate,
    EnhancedMatch,
    LLMProvider,
    LLMResponse,
    MatchMethod,
    ProcessedRequest,
    ReasoningRound,
    ToolDefinition,
    ToolResult,
)
from hybrid_router.errors import (
    ConfigurationError,
    HybridRouterError,
    MalformedModelOutput,
    ModelCallError,
    ReasoningTimeoutError,
)
from hybrid_router.config import ModelConfig, ReasoningSettings, Thresholds
from hybrid_router.tools import ToolRegistry, build_default_registry
from hybrid_router.rules import PatternRuleMatcher
from hybrid_router.intents import IntentDetector
from hybrid_router.reasoning import ReasoningSession, SequentialReasoner
from hybrid_router.classifier import HybridClassifier
from hybrid_router.dispatcher import RequestDispatcher

__all__ = [
    "ClassificationCandidate",
    "EnhancedMatch",
    "LLMProvider",
    "LLMResponse",
    "MatchMethod",
    "ProcessedRequest",
    "ReasoningRound",
    "ToolDefinition",
    "ToolResult",
    "ConfigurationError",
    "HybridRouterError",
    "MalformedModelOutput",
    "ModelCallError",
    "ReasoningTimeoutError",
    "ModelConfig",
    "ReasoningSettings",
    "Thresholds",
    "ToolRegistry",
    "build_default_registry",
    "PatternRuleMatcher",
    "IntentDetector",
    "ReasoningSession",
    "SequentialReasoner",
    "HybridClassifier",
    "RequestDispatcher",
]
