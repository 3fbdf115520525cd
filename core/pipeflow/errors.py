"""Exception hierarchy for pipeflow."""


class PipelineError(Exception):
    """Base class for all pipeflow errors."""


class GraphValidationError(PipelineError, ValueError):
    """Raised when a graph definition is malformed."""


class GraphCycleError(GraphValidationError):
    """Raised when an operation requires an acyclic graph but a cycle was found."""


class InvocationError(PipelineError):
    """Raised when a backend call for a single step fails."""

    def __init__(self, message: str, agent_id: str | None = None):
        super().__init__(message)
        self.agent_id = agent_id
