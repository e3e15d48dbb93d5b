"""Exception hierarchy for hybrid-router."""


class HybridRouterError(Exception):
    """Base class for all hybrid-router errors."""


class ConfigurationError(HybridRouterError):
    """Missing endpoint/model, invalid thresholds or a broken tool registry."""


class ModelCallError(HybridRouterError):
    """Transport or HTTP failure while reaching the completion endpoint."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"{base} (status={self.status_code}, body={(self.body or '')[:200]})"


class ReasoningTimeoutError(ModelCallError):
    """The reasoning session ran past its deadline."""


class MalformedModelOutput(HybridRouterError):
    """Completion content is not a valid reasoning round.

    Raised by the round parser and always recovered inside the engine.
    """

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw
