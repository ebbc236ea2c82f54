"""
Agents and the machinery every agent passes through.

Includes the invocation and callback contexts, the agent tree, the LLM agent
loop and the function-call dispatcher.
"""

from .base_agent import BaseAgent
from .callback_context import CallbackContext
from .contents import build_contents, is_event_in_branch
from .functions import (
    find_matching_function_call,
    generate_auth_event,
    generate_request_confirmation_event,
    get_long_running_function_calls,
    handle_function_calls,
    merge_parallel_function_response_events,
    populate_client_function_call_id,
    remove_client_function_call_id,
)
from .invocation_context import InvocationContext, LlmCallCounter
from .llm_agent import LlmAgent
from .tool_context import ToolContext

__all__ = [
    # Contexts
    "InvocationContext",
    "LlmCallCounter",
    "CallbackContext",
    "ToolContext",
    # Agents
    "BaseAgent",
    "LlmAgent",
    # Dispatcher
    "handle_function_calls",
    "merge_parallel_function_response_events",
    "populate_client_function_call_id",
    "remove_client_function_call_id",
    "get_long_running_function_calls",
    "generate_auth_event",
    "generate_request_confirmation_event",
    "find_matching_function_call",
    # History
    "build_contents",
    "is_event_in_branch",
]
