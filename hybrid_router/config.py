"""Static configuration: model endpoint, thresholds, reasoning limits.

All objects here are frozen and safe to share between concurrent
classifications.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from dotenv import load_dotenv
from loguru import logger

from hybrid_router.errors import ConfigurationError

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_PRIMARY_MODEL = "google/gemini-2.0-flash-001"
DEFAULT_FALLBACK_MODEL = "perplexity/sonar-deep-research"


@dataclass(frozen=True)
class ModelConfig:
    """Where and with which models to reach the completion API.

    ``llm_mapping`` maps logical task names (``"sequential_thinking"``,
    ``"tool_selection"``, ...) to concrete model identifiers so callers can
    override the model per task without code changes.
    """

    base_url: str
    api_key: str
    primary_model: str
    fallback_model: str = ""
    llm_mapping: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Read-only view; the config is shared across concurrent calls.
        object.__setattr__(self, "llm_mapping", MappingProxyType(dict(self.llm_mapping)))

    def model_for(self, task_name: str) -> str:
        """Resolve the model for a logical task.

        Raises:
            ConfigurationError: If neither the mapping nor the primary or
                fallback model provides an identifier.
        """
        model = self.llm_mapping.get(task_name) or self.primary_model or self.fallback_model
        if not model:
            raise ConfigurationError(f"No model configured for task '{task_name}'")
        return model

    def require_endpoint(self) -> str:
        if not self.base_url:
            raise ConfigurationError("Completion endpoint (base_url) is not configured")
        return self.base_url.rstrip("/")

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> ModelConfig:
        """Build a config from environment variables and an optional ``.env``.

        Variables: ``OPENROUTER_BASE_URL``, ``OPENROUTER_API_KEY``,
        ``GEMINI_MODEL`` (primary), ``PERPLEXITY_MODEL`` (fallback) and
        ``LLM_CONFIG_PATH`` pointing at a JSON file with an ``llm_mapping``
        object.
        """
        load_dotenv(env_file or Path.cwd() / ".env", override=False)
        mapping_path = os.getenv("LLM_CONFIG_PATH")
        return cls(
            base_url=os.getenv("OPENROUTER_BASE_URL", DEFAULT_BASE_URL),
            api_key=os.getenv("OPENROUTER_API_KEY", ""),
            primary_model=os.getenv("GEMINI_MODEL", DEFAULT_PRIMARY_MODEL),
            fallback_model=os.getenv("PERPLEXITY_MODEL", DEFAULT_FALLBACK_MODEL),
            llm_mapping=load_llm_mapping(Path(mapping_path)) if mapping_path else {},
        )


def load_llm_mapping(path: Path) -> dict[str, str]:
    """Read the ``llm_mapping`` object from a JSON config file.

    A missing or malformed file is a configuration error, not a silent skip.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read LLM config {path}: {e}") from e

    mapping = data.get("llm_mapping", {}) if isinstance(data, dict) else None
    if not isinstance(mapping, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in mapping.items()
    ):
        raise ConfigurationError(f"'llm_mapping' in {path} must be an object of strings")
    logger.debug(f"Loaded llm_mapping with {len(mapping)} entries from {path}")
    return mapping


@dataclass(frozen=True)
class Thresholds:
    """Acceptance thresholds for the classifier cascade."""

    high: float = 0.8
    medium: float = 0.6
    low: float = 0.4

    def __post_init__(self) -> None:
        if not 0.0 <= self.low <= self.medium <= self.high <= 1.0:
            raise ConfigurationError(
                f"Thresholds must satisfy 0 <= low <= medium <= high <= 1, "
                f"got low={self.low} medium={self.medium} high={self.high}"
            )


@dataclass(frozen=True)
class ReasoningSettings:
    """Limits and request parameters for the sequential reasoning engine."""

    initial_estimate: int = 5
    max_rounds: int = 10
    max_tokens: int = 2000
    temperature: float = 0.7
    timeout: float | None = None  # overall seconds per session, None = unbounded

    def __post_init__(self) -> None:
        if self.max_rounds < 1:
            raise ConfigurationError(f"max_rounds must be >= 1, got {self.max_rounds}")
        if self.initial_estimate < 1:
            raise ConfigurationError(f"initial_estimate must be >= 1, got {self.initial_estimate}")
