"""
Core domain exceptions.

Tool failures are recoverable inside the function-call dispatcher. Everything
else here is fatal for the current invocation and propagates to the caller of
the runner.
"""


class CoreError(Exception):
    """Base exception for all core errors."""

    pass


class ConfigurationError(CoreError):
    """Raised when the engine is wired up incorrectly.

    Duplicate plugin names, unknown tools, invalid agent trees and missing
    sessions all end the invocation immediately and are never retried.
    """

    pass


class NotFoundError(CoreError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class SessionNotFoundError(NotFoundError, ConfigurationError):
    """Raised by the runner when the session for a turn does not exist."""

    def __init__(self, session_id: str):
        super().__init__("Session", session_id)


class AlreadyExistsError(CoreError):
    """Raised when creating a resource whose identifier is already taken."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} already exists: {identifier}")


class PluginExecutionError(CoreError):
    """Raised when a plugin hook raises. Wraps the original exception."""

    def __init__(self, plugin_name: str, hook_name: str, cause: BaseException):
        self.plugin_name = plugin_name
        self.hook_name = hook_name
        self.cause = cause
        super().__init__(
            f"Error in plugin '{plugin_name}' during '{hook_name}' callback: {cause}"
        )


class ToolExecutionError(CoreError):
    """Raised when a tool's execution function fails."""

    def __init__(self, tool_name: str, cause: BaseException):
        self.tool_name = tool_name
        self.cause = cause
        super().__init__(f"Tool execution failed: {cause}")


class LlmCallsLimitExceededError(CoreError):
    """Raised when an invocation makes more model calls than allowed."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Max number of llm calls limit of `{limit}` exceeded")
