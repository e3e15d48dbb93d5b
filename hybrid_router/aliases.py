"""Reading a tool name out of a model reply.

The sequential stage asks the model to "reply with just the name of the
tool"; models answer with labels ("Tool: prd-generator"), quotes, casing
drift or short names. :func:`normalize_tool_answer` maps that text onto a
registered tool id, or ``None`` when it does not look like a tool.
"""

from __future__ import annotations

import difflib
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hybrid_router.tools import ToolRegistry

# Suffixes every tool identifier carries.
TOOL_NAME_MARKERS = ("generator", "manager")

_LABEL_RE = re.compile(r"^.*?: ")
_EDGE_CHARS = " \t`'\"*.,;!?()[]"


def _normalize(s: str) -> str:
    """Strip hyphens, underscores, spaces, dots and lowercase."""
    return s.lower().replace("-", "").replace("_", "").replace(" ", "").replace(".", "")


def first_answer_token(answer: str) -> str:
    """First line of ``answer``, lower-cased, without a leading ``label: `` prefix."""
    lines = answer.strip().lower().split("\n")
    token = _LABEL_RE.sub("", lines[0].strip(), count=1)
    return token.strip(_EDGE_CHARS)


def normalize_tool_answer(answer: str, registry: ToolRegistry) -> str | None:
    """Resolve a free-text tool answer to a registered tool id.

    Order:
      1. Exact tool id.
      2. Registered tool id contained in the answer (longest wins).
      3. Normalized match against ids and aliases.
      4. Fuzzy match, only for answers that carry a tool-name marker.
    """
    token = first_answer_token(answer)
    if not token:
        return None

    # 1. Exact
    if token in registry:
        return token

    # 2. Substring
    contained = [tool_id for tool_id in registry.ids if tool_id in token]
    if contained:
        return max(contained, key=len)

    # 3. Normalized id / alias
    normed = _normalize(token)
    lookup = {_normalize(tool_id): tool_id for tool_id in registry.ids}
    for alias, owner in registry.aliases.items():
        lookup.setdefault(_normalize(alias), owner)
    if normed in lookup:
        return lookup[normed]

    # 4. Fuzzy, e.g. "task-lists-generator" or "prd_generater"
    if not any(marker in token for marker in TOOL_NAME_MARKERS):
        return None
    candidates = difflib.get_close_matches(normed, lookup.keys(), n=2, cutoff=0.8)
    owners = {lookup[c] for c in candidates}
    if len(owners) == 1:
        return owners.pop()
    return None
