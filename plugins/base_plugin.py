"""Base class for plugins.

A plugin intercepts the invocation at twelve hook points. Every hook is
optional: the defaults here do nothing and return None. Returning anything
other than None short-circuits the hook: plugins registered later are not
called, and for most hooks the engine's default behavior is skipped in favor
of the returned value.

Hooks may be written as coroutines or as plain functions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from agent.base_agent import BaseAgent
    from agent.callback_context import CallbackContext
    from agent.invocation_context import InvocationContext
    from agent.tool_context import ToolContext
    from core.models import Content, Event
    from llm.base_llm import LlmRequest, LlmResponse
    from tools.base_tool import BaseTool


HOOK_NAMES = (
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
)


class BasePlugin:
    """Base class for creating plugins.

    Plugins run before agent-level callbacks. Subclasses override the hooks
    they care about.

    Attributes:
        name: Unique name of the plugin within a plugin manager
    """

    def __init__(self, name: str):
        self.name = name

    # --- Runner lifecycle ---

    async def on_user_message(
        self, *, invocation_context: InvocationContext, user_message: Content
    ) -> Content | None:
        """Called with the incoming message. Return a Content to replace it."""
        return None

    async def before_run(
        self, *, invocation_context: InvocationContext
    ) -> Content | None:
        """Called before the agent runs. Return a Content to end the turn with it."""
        return None

    async def on_event(
        self, *, invocation_context: InvocationContext, event: Event
    ) -> Event | None:
        """Called for every produced event. Return an Event to replace it."""
        return None

    async def after_run(self, *, invocation_context: InvocationContext) -> None:
        """Called once the event sequence is exhausted."""
        return None

    # --- Agent lifecycle ---

    async def before_agent(
        self, *, agent: BaseAgent, callback_context: CallbackContext
    ) -> Content | None:
        """Return a Content to skip the agent and respond with it instead."""
        return None

    async def after_agent(
        self, *, agent: BaseAgent, callback_context: CallbackContext
    ) -> Content | None:
        """Return a Content to append a final response after the agent ran."""
        return None

    # --- Model ---

    async def before_model(
        self, *, callback_context: CallbackContext, llm_request: LlmRequest
    ) -> LlmResponse | None:
        """Return an LlmResponse to skip the model call."""
        return None

    async def after_model(
        self, *, callback_context: CallbackContext, llm_response: LlmResponse
    ) -> LlmResponse | None:
        """Return an LlmResponse to replace the model's response."""
        return None

    async def on_model_error(
        self,
        *,
        callback_context: CallbackContext,
        llm_request: LlmRequest,
        error: Exception,
    ) -> LlmResponse | None:
        """Return an LlmResponse to recover from a failed model call."""
        return None

    # --- Tools ---

    async def before_tool(
        self,
        *,
        tool: BaseTool,
        tool_args: dict[str, Any],
        tool_context: ToolContext,
    ) -> dict[str, Any] | None:
        """Return a response to skip the tool. Used for confirmation and mocking."""
        return None

    async def after_tool(
        self,
        *,
        tool: BaseTool,
        tool_args: dict[str, Any],
        tool_context: ToolContext,
        result: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Return a response to replace the (normalized) tool result."""
        return None

    async def on_tool_error(
        self,
        *,
        tool: BaseTool,
        tool_args: dict[str, Any],
        tool_context: ToolContext,
        error: Exception,
    ) -> dict[str, Any] | None:
        """Return a response to recover from a failed tool call."""
        return None
