"""Plugin system for the invocation engine.

Plugins are application-wide interceptors. The plugin manager runs them in
registration order at twelve hook points:

1. Runner lifecycle - on_user_message, before_run, on_event, after_run
2. Agent lifecycle - before_agent, after_agent
3. Model calls - before_model, after_model, on_model_error
4. Tool calls - before_tool, after_tool, on_tool_error

The first plugin returning a non-None value short-circuits the hook.
"""

from .base_plugin import HOOK_NAMES, BasePlugin
from .confirmation import ToolConfirmationPlugin
from .decorators import (
    after_agent,
    after_model,
    after_run,
    after_tool,
    before_agent,
    before_model,
    before_run,
    before_tool,
    on_event,
    on_model_error,
    on_tool_error,
    on_user_message,
)
from .function_plugin import FunctionPlugin
from .logging_plugin import LoggingPlugin
from .manager import PluginManager

__all__ = [
    # Base
    "BasePlugin",
    "HOOK_NAMES",
    # Manager
    "PluginManager",
    # Function plugins
    "FunctionPlugin",
    # Decorators
    "on_user_message",
    "before_run",
    "on_event",
    "after_run",
    "before_agent",
    "after_agent",
    "before_model",
    "after_model",
    "on_model_error",
    "before_tool",
    "after_tool",
    "on_tool_error",
    # Built-in plugins
    "LoggingPlugin",
    "ToolConfirmationPlugin",
]
