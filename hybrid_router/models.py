"""Core data models for hybrid-router."""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


@dataclass
class LLMResponse:
    """Response from a completion provider."""
    content: str | None
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)
    model_used: str = ""


class LLMProvider(ABC):
    """Abstract base class for completion providers."""

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
        response_format: dict[str, Any] | None = None,
    ) -> LLMResponse:
        """Send a chat completion request."""
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MatchMethod(str, Enum):
    """Which stage of the cascade produced a match."""

    RULE = "rule"
    INTENT = "intent"
    SEQUENTIAL = "sequential"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ClassificationCandidate:
    """A tool guess from a single matching stage."""
    tool_id: str
    confidence: float
    matched_pattern: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")


@dataclass(frozen=True)
class EnhancedMatch:
    """Final routing decision handed to the dispatcher."""
    tool_id: str
    confidence: float
    matched_pattern: str | None
    parameters: dict[str, str]
    method: MatchMethod
    requires_confirmation: bool

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @classmethod
    def build(
        cls,
        candidate: ClassificationCandidate,
        parameters: dict[str, str],
        method: MatchMethod,
        high_threshold: float,
    ) -> "EnhancedMatch":
        """Attach parameters and derive ``requires_confirmation``.

        Confirmation is always required for model-assisted and fallback
        matches, and for any match below the high-confidence threshold.
        """
        requires_confirmation = (
            method in (MatchMethod.SEQUENTIAL, MatchMethod.FALLBACK)
            or candidate.confidence < high_threshold
        )
        return cls(
            tool_id=candidate.tool_id,
            confidence=candidate.confidence,
            matched_pattern=candidate.matched_pattern,
            parameters=dict(parameters),
            method=method,
            requires_confirmation=requires_confirmation,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["method"] = self.method.value
        return data


@dataclass(frozen=True)
class ReasoningRound:
    """One exchange with the completion model inside a reasoning session."""
    index: int
    total_estimate: int
    text: str
    continue_: bool
    is_revision: bool = False
    revises_round: int | None = None
    branch_point: int | None = None
    branch_id: str | None = None
    needs_more_rounds: bool = False


@dataclass(frozen=True)
class ToolDefinition:
    """A registered capability the classifier can route to."""
    tool_id: str
    description: str
    patterns: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    aliases: tuple[str, ...] = ()


@dataclass
class ToolResult:
    """Output of a tool executor."""
    content: list[str] = field(default_factory=list)
    is_error: bool = False

    @property
    def text(self) -> str:
        return "\n\n".join(self.content)


@dataclass
class ProcessedRequest:
    """A classified request ready for execution or confirmation."""
    tool_id: str
    parameters: dict[str, str]
    explanation: str
    confidence: float
    requires_confirmation: bool
