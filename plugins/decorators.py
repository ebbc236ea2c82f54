"""Decorator-based plugin authoring API.

Marks plain functions as plugin hooks so that FunctionPlugin can collect
them. Hooks receive keyword arguments only.

Example usage:
    @before_tool
    async def deny_shell(*, tool, tool_args, tool_context):
        if tool.name == "shell":
            return {"error": "shell is disabled"}
        return None

    plugin = FunctionPlugin.from_functions("guard", deny_shell)
"""

from typing import Callable, TypeVar

F = TypeVar("F", bound=Callable)


def _mark(fn: F, hook_name: str) -> F:
    fn._hook_name = hook_name  # type: ignore[attr-defined]
    return fn


def on_user_message(fn: F) -> F:
    """Hook: Called with the incoming user message.

    Args:
        fn: Function with signature
            (*, invocation_context, user_message) -> Content | None
    """
    return _mark(fn, "on_user_message")


def before_run(fn: F) -> F:
    """Hook: Called before the agent runs. A returned Content ends the turn.

    Args:
        fn: Function with signature (*, invocation_context) -> Content | None
    """
    return _mark(fn, "before_run")


def on_event(fn: F) -> F:
    """Hook: Called for every event before it is persisted and yielded.

    Args:
        fn: Function with signature (*, invocation_context, event) -> Event | None
    """
    return _mark(fn, "on_event")


def after_run(fn: F) -> F:
    """Hook: Called after the last event of the turn. Return value is ignored."""
    return _mark(fn, "after_run")


def before_agent(fn: F) -> F:
    """Hook: Called before an agent runs. A returned Content skips the agent."""
    return _mark(fn, "before_agent")


def after_agent(fn: F) -> F:
    """Hook: Called after an agent ran. A returned Content is appended."""
    return _mark(fn, "after_agent")


def before_model(fn: F) -> F:
    """Hook: Called before each model call.

    Args:
        fn: Function with signature
            (*, callback_context, llm_request) -> LlmResponse | None
    """
    return _mark(fn, "before_model")


def after_model(fn: F) -> F:
    """Hook: Called with each model response. A returned response replaces it."""
    return _mark(fn, "after_model")


def on_model_error(fn: F) -> F:
    """Hook: Called when the model call raises."""
    return _mark(fn, "on_model_error")


def before_tool(fn: F) -> F:
    """Hook: Called before a tool executes.

    Return a dict to skip the tool and use it as the response.

    Args:
        fn: Function with signature
            (*, tool, tool_args, tool_context) -> dict | None
    """
    return _mark(fn, "before_tool")


def after_tool(fn: F) -> F:
    """Hook: Called with the normalized tool result.

    Args:
        fn: Function with signature
            (*, tool, tool_args, tool_context, result) -> dict | None
    """
    return _mark(fn, "after_tool")


def on_tool_error(fn: F) -> F:
    """Hook: Called when a tool raises. Return a dict to recover."""
    return _mark(fn, "on_tool_error")
