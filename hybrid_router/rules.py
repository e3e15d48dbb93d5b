"""Pattern rule matcher — first stage of the classifier cascade.

Matches a request against each registered tool's literal/templated patterns
(``"research {topic}"``) and, failing that, against the words of its
description and keywords. Purely local and deterministic.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

from loguru import logger

from hybrid_router.errors import ConfigurationError
from hybrid_router.models import ClassificationCandidate

if TYPE_CHECKING:
    from hybrid_router.tools import ToolRegistry

LITERAL_MATCH_CONFIDENCE = 1.0
PATTERN_MATCH_CONFIDENCE = 0.9
DESCRIPTION_MATCH_CONFIDENCE = 0.7
DESCRIPTION_MATCH = "description_match"
MIN_DESCRIPTION_OVERLAP = 2

_SLOT_RE = re.compile(r"\{([^{}]*)\}")
_WORD_RE = re.compile(r"[a-z0-9]+")

_POLITE_PREFIX_RE = re.compile(
    r"^(?:please|kindly|hey|can you|could you|would you|will you|"
    r"i want you to|i'd like you to|i would like you to|help me)[\s,]+",
    re.IGNORECASE,
)

STOP_WORDS = frozenset({
    "a", "an", "the", "and", "or", "of", "for", "to", "in", "on", "at", "by",
    "with", "about", "from", "into", "me", "my", "i", "you", "your", "we",
    "our", "it", "its", "this", "that", "these", "those", "is", "are", "be",
    "was", "can", "could", "would", "should", "will", "please", "some", "any",
    "all", "what", "how", "do", "does", "so", "as", "up", "new",
    # generic request verbs every tool description shares
    "create", "generate", "write", "make", "build", "need", "want", "help",
    "give", "get", "detailed", "comprehensive", "custom",
})


@dataclass(frozen=True)
class CompiledPattern:
    """A pattern string turned into an anchored, case-insensitive regex."""
    pattern: str
    regex: re.Pattern[str]
    slots: tuple[str, ...]
    literal_length: int

    @property
    def is_literal(self) -> bool:
        return not self.slots


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> CompiledPattern:
    """Compile ``"verb {slot} more words"`` into a :class:`CompiledPattern`.

    Raises:
        ConfigurationError: For empty patterns, invalid or duplicate slot
            names, unbalanced braces, or two slots with no text between them.
    """
    if not pattern.strip():
        raise ConfigurationError("Empty pattern")

    parts: list[str] = []
    slots: list[str] = []
    literal_length = 0
    pos = 0
    prev_was_slot = False
    for m in _SLOT_RE.finditer(pattern):
        literal = pattern[pos:m.start()]
        if "{" in literal or "}" in literal:
            raise ConfigurationError(f"Unbalanced braces in pattern {pattern!r}")
        if literal:
            parts.append(_literal_regex(literal))
            literal_length += len(literal.strip())
        elif prev_was_slot:
            raise ConfigurationError(f"Adjacent slots are ambiguous in pattern {pattern!r}")

        name = m.group(1)
        if not name.isidentifier():
            raise ConfigurationError(f"Invalid slot name {name!r} in pattern {pattern!r}")
        if name in slots:
            raise ConfigurationError(f"Duplicate slot {name!r} in pattern {pattern!r}")
        slots.append(name)
        parts.append(f"(?P<{name}>.+?)")
        prev_was_slot = True
        pos = m.end()

    tail = pattern[pos:]
    if "{" in tail or "}" in tail:
        raise ConfigurationError(f"Unbalanced braces in pattern {pattern!r}")
    if tail:
        parts.append(_literal_regex(tail))
        literal_length += len(tail.strip())

    regex = re.compile("^" + "".join(parts) + "$", re.IGNORECASE | re.DOTALL)
    return CompiledPattern(pattern, regex, tuple(slots), literal_length)


def _literal_regex(literal: str) -> str:
    # Any whitespace run in the pattern matches any whitespace run in the request.
    if not literal.strip():
        return r"\s+"
    return r"\s+".join(re.escape(chunk) for chunk in re.split(r"\s+", literal))


def normalize_request(request: str) -> str:
    """Trim whitespace, trailing punctuation and leading politeness phrases."""
    text = " ".join(request.split())
    text = text.rstrip(".?!;: ")
    while True:
        stripped = _POLITE_PREFIX_RE.sub("", text, count=1)
        if stripped == text:
            break
        text = stripped
    return text


def _stem(word: str) -> str:
    if len(word) > 4 and word.endswith("ies"):
        return word[:-3] + "y"
    if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def significant_words(text: str) -> set[str]:
    """Lower-cased, stemmed words of ``text`` minus stop words."""
    return {
        _stem(w) for w in _WORD_RE.findall(text.lower())
        if w not in STOP_WORDS and _stem(w) not in STOP_WORDS
    }


class PatternRuleMatcher:
    """Match requests against the registry's patterns and descriptions."""

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry
        self._compiled = [
            (tool.tool_id, compile_pattern(p))
            for tool in registry
            for p in tool.patterns
        ]
        self._vocabulary = {
            tool.tool_id: significant_words(" ".join((tool.description, *tool.keywords)))
            for tool in registry
        }

    def match(self, request: str) -> ClassificationCandidate | None:
        """Return the best rule candidate for ``request`` or ``None``."""
        text = normalize_request(request)
        if not text:
            return None

        best: tuple[float, int, int] | None = None
        best_candidate: ClassificationCandidate | None = None
        for order, (tool_id, compiled) in enumerate(self._compiled):
            if not compiled.regex.match(text):
                continue
            score = LITERAL_MATCH_CONFIDENCE if compiled.is_literal else PATTERN_MATCH_CONFIDENCE
            # Highest score, then most literal text, then registry order.
            rank = (score, compiled.literal_length, -order)
            if best is None or rank > best:
                best = rank
                best_candidate = ClassificationCandidate(tool_id, score, compiled.pattern)

        if best_candidate is not None:
            logger.debug(
                f"Rule match: {best_candidate.tool_id} via pattern "
                f"'{best_candidate.matched_pattern}' ({best_candidate.confidence:.2f})"
            )
            return best_candidate

        return self._match_description(text)

    def _match_description(self, text: str) -> ClassificationCandidate | None:
        words = significant_words(text)
        if not words:
            return None

        best_tool: str | None = None
        best_overlap = 0
        for tool_id, vocabulary in self._vocabulary.items():
            overlap = len(words & vocabulary)
            if overlap > best_overlap:
                best_tool, best_overlap = tool_id, overlap

        if best_tool is None or best_overlap < MIN_DESCRIPTION_OVERLAP:
            return None
        logger.debug(f"Description match: {best_tool} ({best_overlap} shared words)")
        return ClassificationCandidate(best_tool, DESCRIPTION_MATCH_CONFIDENCE, DESCRIPTION_MATCH)

    def extract_parameters(self, request: str, pattern: str) -> dict[str, str]:
        """Recover named slot values of ``pattern`` from ``request``.

        Returns an empty mapping for slot-less patterns, the description
        match marker, or a request the pattern does not match.
        """
        if pattern == DESCRIPTION_MATCH:
            return {}
        try:
            compiled = compile_pattern(pattern)
        except ConfigurationError:
            return {}
        if compiled.is_literal:
            return {}
        m = compiled.regex.match(normalize_request(request))
        if not m:
            return {}
        return {name: m.group(name).strip() for name in compiled.slots}
