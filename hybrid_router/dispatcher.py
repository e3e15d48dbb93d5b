"""RequestDispatcher — turn a routing decision into a tool invocation.

Uncertain matches are returned as a confirmation prompt instead of being
executed. Execution failures come back as error results; the dispatcher does
not raise for them.
"""

from typing import Awaitable, Callable, Mapping

from loguru import logger

from hybrid_router.classifier import HybridClassifier
from hybrid_router.config import ModelConfig
from hybrid_router.errors import ConfigurationError
from hybrid_router.models import ProcessedRequest, ToolResult

ToolExecutor = Callable[[dict[str, str]], Awaitable[ToolResult]]


class RequestDispatcher:
    """Classify requests and run the executor registered for the chosen tool."""

    def __init__(
        self,
        classifier: HybridClassifier,
        executors: Mapping[str, ToolExecutor],
    ):
        unknown = [tool_id for tool_id in executors if tool_id not in classifier.registry]
        if unknown:
            raise ConfigurationError(f"Executors registered for unknown tools: {', '.join(unknown)}")
        self._classifier = classifier
        self._executors = dict(executors)

    async def process(self, request: str, config: ModelConfig) -> ProcessedRequest:
        """Classify ``request`` and attach the rationale."""
        match = await self._classifier.classify(request, config)
        return ProcessedRequest(
            tool_id=match.tool_id,
            parameters=match.parameters,
            explanation=self._classifier.explain(match),
            confidence=match.confidence,
            requires_confirmation=match.requires_confirmation,
        )

    async def execute(self, processed: ProcessedRequest) -> ToolResult:
        """Invoke the executor for ``processed.tool_id`` with its parameters."""
        executor = self._executors.get(processed.tool_id)
        if executor is None:
            logger.warning(f"No executor found for tool: {processed.tool_id}")
            return ToolResult([f"Error executing tool: No executor found for tool: {processed.tool_id}"], is_error=True)

        try:
            return await executor(dict(processed.parameters))
        except Exception as e:
            logger.exception(f"Executor for {processed.tool_id} failed")
            return ToolResult([f"Error executing tool: {e}"], is_error=True)

    async def handle(self, request: str, config: ModelConfig) -> ToolResult:
        """Classify, then either ask for confirmation or execute."""
        processed = await self.process(request, config)
        if processed.requires_confirmation:
            return ToolResult([
                f"I'll use the {processed.tool_id} for this request.\n\n"
                f"{processed.explanation}\n\n"
                f"Confidence: {round(processed.confidence * 100)}%"
            ])

        result = await self.execute(processed)
        return ToolResult(
            [f"Using {processed.tool_id}:\n\n{processed.explanation}\n\n---\n\n", *result.content],
            is_error=result.is_error,
        )
