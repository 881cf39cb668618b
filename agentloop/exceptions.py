"""Custom exceptions for agentloop."""


class AgentLoopError(Exception):
    """Base exception for agentloop."""

    pass


class ConfigurationError(AgentLoopError):
    """Configuration-related errors."""

    pass


class LLMError(AgentLoopError):
    """Generation service errors."""

    pass


class LLMAPIError(LLMError):
    """Generation service API errors (bad status, transport failure)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ActionError(AgentLoopError):
    """Action behavior errors, recorded in history instead of aborting the step."""

    pass


class ActionExecutionError(ActionError):
    """Action execution failed."""

    def __init__(self, action_name: str, message: str):
        super().__init__(f"Action '{action_name}' failed: {message}")
        self.action_name = action_name


class StorageNotFoundError(ActionError):
    """Storage slot not active for this run."""

    def __init__(self, name: str):
        super().__init__(f"storage {name} not found")
        self.name = name


class IterationBudgetExceededError(AgentLoopError):
    """Maximum number of iterations reached."""

    def __init__(self, iteration: int, max_iterations: int):
        super().__init__(
            f"maximum number of iterations reached ({max_iterations})"
        )
        self.iteration = iteration
        self.max_iterations = max_iterations


class PersistenceError(AgentLoopError):
    """Writing a state snapshot or prompt dump failed."""

    def __init__(self, path: str, message: str):
        super().__init__(f"Can't persist to {path}: {message}")
        self.path = path


class TaskError(AgentLoopError):
    """Invalid task definition."""

    pass
