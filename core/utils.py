"""Helpers shared by plugin, agent and tool callbacks."""

import inspect
from typing import Any, Callable


async def call_maybe_async(handler: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call a handler, handling both sync and async functions.

    Args:
        handler: The function to call
        *args: Positional arguments to pass to the handler
        **kwargs: Keyword arguments to pass to the handler

    Returns:
        The handler's return value, awaited if it was awaitable
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
