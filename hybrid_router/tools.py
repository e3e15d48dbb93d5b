"""Tool registry: the closed set of capabilities requests are routed to.

The registry is built once at startup and validated eagerly: a duplicate
identifier, a clashing alias or a malformed pattern raises
:class:`ConfigurationError` instead of being skipped.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from loguru import logger

from hybrid_router.errors import ConfigurationError
from hybrid_router.models import ToolDefinition
from hybrid_router.rules import compile_pattern

DEFAULT_TOOL = "research-manager"

DEFAULT_TOOLS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        tool_id="research-manager",
        description="Performs deep research on topics and gathers up-to-date information",
        patterns=(
            "research {topic}",
            "do research on {topic}",
            "find information about {topic}",
            "look up {topic}",
            "investigate {topic}",
            "what is the latest on {topic}",
        ),
        keywords=("research", "investigate", "information", "study", "explore", "latest", "sources"),
        aliases=("research", "researcher", "research manager"),
    ),
    ToolDefinition(
        tool_id="prd-generator",
        description="Creates comprehensive product requirements documents",
        patterns=(
            "create a prd for {productDescription}",
            "generate a prd for {productDescription}",
            "write a prd for {productDescription}",
            "prd for {productDescription}",
            "create product requirements for {productDescription}",
            "write a product requirements document for {productDescription}",
        ),
        keywords=("prd", "product", "requirements", "document", "specification", "spec"),
        aliases=("prd", "product requirements", "prd generator"),
    ),
    ToolDefinition(
        tool_id="user-stories-generator",
        description="Creates detailed user stories with acceptance criteria",
        patterns=(
            "create user stories for {productDescription}",
            "generate user stories for {productDescription}",
            "write user stories for {productDescription}",
            "user stories for {productDescription}",
        ),
        keywords=("user", "stories", "story", "acceptance", "criteria", "persona", "agile"),
        aliases=("user stories", "stories", "user story generator"),
    ),
    ToolDefinition(
        tool_id="task-list-generator",
        description="Creates structured development task lists with dependencies",
        patterns=(
            "create a task list for {productDescription}",
            "generate a task list for {productDescription}",
            "generate tasks for {productDescription}",
            "task list for {productDescription}",
            "break down {productDescription} into tasks",
        ),
        keywords=("task", "tasks", "todo", "breakdown", "backlog", "milestone", "dependencies"),
        aliases=("task list", "tasks", "task generator"),
    ),
    ToolDefinition(
        tool_id="rules-generator",
        description="Creates project-specific development rules and coding guidelines",
        patterns=(
            "create rules for {productDescription}",
            "generate rules for {productDescription}",
            "generate development rules for {productDescription}",
            "create coding standards for {productDescription}",
        ),
        keywords=("rules", "guidelines", "standards", "conventions", "coding", "style", "lint"),
        aliases=("rules", "rule generator", "coding rules"),
    ),
    ToolDefinition(
        tool_id="fullstack-starter-kit-generator",
        description="Generates full-stack project starter kits with custom tech stacks",
        patterns=(
            "create a starter kit for {use_case}",
            "generate a starter kit for {use_case}",
            "generate a fullstack starter kit for {use_case}",
            "scaffold {use_case}",
            "bootstrap a project for {use_case}",
        ),
        keywords=("starter", "kit", "scaffold", "boilerplate", "fullstack", "template", "bootstrap"),
        aliases=("starter kit", "fullstack", "fullstack starter kit"),
    ),
    ToolDefinition(
        tool_id="workflow-manager",
        description="Plans and coordinates multi-step development workflows across tools",
        patterns=(
            "run workflow {workflow}",
            "start workflow {workflow}",
            "run the {workflow} workflow",
        ),
        keywords=("workflow", "pipeline", "orchestrate", "coordinate", "steps", "process"),
        aliases=("workflow", "workflows"),
    ),
)


class ToolRegistry:
    """Ordered, validated collection of :class:`ToolDefinition`.

    Registration order is significant: it is the tie-breaker for both
    matchers.
    """

    def __init__(self, tools: Iterable[ToolDefinition] = ()) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._aliases: dict[str, str] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        if not tool.tool_id or tool.tool_id != tool.tool_id.strip().lower():
            raise ConfigurationError(f"Tool id must be a non-empty lower-case name: {tool.tool_id!r}")
        if tool.tool_id in self._tools:
            raise ConfigurationError(f"Duplicate tool id: {tool.tool_id}")
        for pattern in tool.patterns:
            # Compile now so a broken pattern fails at startup, not per request.
            compile_pattern(pattern)
        for alias in tool.aliases:
            key = alias.lower()
            owner = self._aliases.get(key)
            if owner is not None and owner != tool.tool_id:
                raise ConfigurationError(f"Alias '{alias}' is claimed by both {owner} and {tool.tool_id}")
            self._aliases[key] = tool.tool_id
        self._tools[tool.tool_id] = tool
        logger.debug(f"Registered tool {tool.tool_id} ({len(tool.patterns)} patterns)")

    def get(self, tool_id: str) -> ToolDefinition | None:
        return self._tools.get(tool_id)

    def alias_owner(self, alias: str) -> str | None:
        return self._aliases.get(alias.lower())

    @property
    def aliases(self) -> dict[str, str]:
        return dict(self._aliases)

    @property
    def ids(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)


def build_default_registry() -> ToolRegistry:
    """Registry with the built-in document and research tools."""
    return ToolRegistry(DEFAULT_TOOLS)
