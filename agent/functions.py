"""Function-call dispatch.

Runs the tool calls of one model response through the plugin and
agent-level tool hooks, executes the tools and merges the responses into a
single event, so the model sees one response turn for a batch of parallel
calls.

Execution order per call:
1. plugin before_tool
2. agent before_tool callbacks
3. tool execution (plugin on_tool_error on failure)
4. plugin after_tool
5. agent after_tool callbacks
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel

from core.constants import (
    CLIENT_FUNCTION_CALL_ID_PREFIX,
    MODEL_ROLE,
    REQUEST_CONFIRMATION_FUNCTION_CALL_NAME,
    REQUEST_CREDENTIAL_FUNCTION_CALL_NAME,
    USER_ROLE,
)
from core.exceptions import ConfigurationError, ToolExecutionError
from core.logging_config import log_timing
from core.models import (
    Content,
    Event,
    FunctionCall,
    Part,
    ToolConfirmation,
    merge_event_actions,
)
from core.utils import call_maybe_async

from .tool_context import ToolContext

if TYPE_CHECKING:
    from tools.base_tool import BaseTool

    from .invocation_context import InvocationContext

logger = logging.getLogger(__name__)

ToolCallback = Callable[..., Any]


def generate_client_function_call_id() -> str:
    return f"{CLIENT_FUNCTION_CALL_ID_PREFIX}{uuid.uuid4()}"


def populate_client_function_call_id(content: Content | None) -> None:
    """Give every function call without an id a client-side id, in place."""
    if content is None:
        return
    for part in content.parts:
        if part.function_call and not part.function_call.id:
            part.function_call.id = generate_client_function_call_id()


def remove_client_function_call_id(content: Content | None) -> None:
    """Strip client-side ids from calls and responses, in place.

    Client ids only exist to correlate calls inside the engine and must not
    be sent back to the model.
    """
    if content is None:
        return
    for part in content.parts:
        if part.function_call and (part.function_call.id or "").startswith(
            CLIENT_FUNCTION_CALL_ID_PREFIX
        ):
            part.function_call.id = None
        if part.function_response and (part.function_response.id or "").startswith(
            CLIENT_FUNCTION_CALL_ID_PREFIX
        ):
            part.function_response.id = None


def get_long_running_function_calls(
    function_calls: list[FunctionCall], tools_dict: dict[str, BaseTool]
) -> set[str]:
    """Return the ids of the calls that target long-running tools."""
    long_running_tool_ids = set()
    for function_call in function_calls:
        tool = tools_dict.get(function_call.name)
        if tool is not None and tool.is_long_running and function_call.id:
            long_running_tool_ids.add(function_call.id)
    return long_running_tool_ids


def find_matching_function_call(
    events: list[Event], function_call_id: str
) -> tuple[Event, FunctionCall] | None:
    """Find the most recent event that made the call with the given id."""
    for event in reversed(events):
        for function_call in event.get_function_calls():
            if function_call.id == function_call_id:
                return event, function_call
    return None


# =============================================================================
# Client requests
# =============================================================================


def generate_auth_event(
    invocation_context: InvocationContext, function_response_event: Event
) -> Event | None:
    """Turn requested auth configs into request_credential calls to the client."""
    requested = function_response_event.actions.requested_auth_configs
    if not requested:
        return None

    parts = []
    long_running_tool_ids = set()
    for function_call_id, auth_config in requested.items():
        request_call = FunctionCall(
            id=generate_client_function_call_id(),
            name=REQUEST_CREDENTIAL_FUNCTION_CALL_NAME,
            args={"functionCallId": function_call_id, "authConfig": auth_config},
        )
        long_running_tool_ids.add(request_call.id)
        parts.append(Part(function_call=request_call))

    return Event(
        invocation_id=invocation_context.invocation_id,
        author=invocation_context.agent.name,
        branch=invocation_context.branch,
        content=Content(role=MODEL_ROLE, parts=parts),
        long_running_tool_ids=long_running_tool_ids,
    )


def generate_request_confirmation_event(
    invocation_context: InvocationContext,
    function_call_event: Event,
    function_response_event: Event,
) -> Event | None:
    """Turn requested confirmations into request_confirmation calls to the client.

    Each call carries the original function call and the confirmation
    request, so the answer can be matched back to the call to replay.
    """
    requested = function_response_event.actions.requested_tool_confirmations
    if not requested:
        return None

    calls_by_id = {fc.id: fc for fc in function_call_event.get_function_calls()}
    parts = []
    long_running_tool_ids = set()
    for function_call_id, confirmation in requested.items():
        original = calls_by_id.get(function_call_id)
        if original is None:
            continue
        request_call = FunctionCall(
            id=generate_client_function_call_id(),
            name=REQUEST_CONFIRMATION_FUNCTION_CALL_NAME,
            args={
                "originalFunctionCall": original.model_dump(by_alias=True),
                "toolConfirmation": confirmation.model_dump(by_alias=True),
            },
        )
        long_running_tool_ids.add(request_call.id)
        parts.append(Part(function_call=request_call))

    if not parts:
        return None
    return Event(
        invocation_id=invocation_context.invocation_id,
        author=invocation_context.agent.name,
        branch=invocation_context.branch,
        content=Content(role=MODEL_ROLE, parts=parts),
        long_running_tool_ids=long_running_tool_ids,
    )


# =============================================================================
# Dispatch
# =============================================================================


async def handle_function_calls(
    invocation_context: InvocationContext,
    function_call_event: Event,
    tools_dict: dict[str, BaseTool],
    before_tool_callbacks: list[ToolCallback] | None = None,
    after_tool_callbacks: list[ToolCallback] | None = None,
    filters: set[str] | None = None,
    tool_confirmations: dict[str, ToolConfirmation] | None = None,
) -> Event | None:
    """Execute the function calls of an event and merge the responses.

    Args:
        invocation_context: Context of the agent that made the calls
        function_call_event: The model event carrying the calls
        tools_dict: Tool name -> tool
        before_tool_callbacks: Agent-level callbacks, called with
            (tool, args, tool_context)
        after_tool_callbacks: Agent-level callbacks, called with
            (tool, args, tool_context, tool_response)
        filters: If given, only calls whose id is in this set run
        tool_confirmations: Client answers to confirmation requests, keyed
            by function call id

    Returns:
        One response event for the batch, or None if no call produced a
        response

    Raises:
        ConfigurationError: If a call names a tool that is not in tools_dict
        PluginExecutionError: If a plugin hook raises
    """
    function_calls = function_call_event.get_function_calls()
    if filters is not None:
        function_calls = [fc for fc in function_calls if fc.id and fc.id in filters]
    if not function_calls:
        return None

    plugin_manager = invocation_context.plugin_manager
    response_events: list[Event] = []

    for function_call in function_calls:
        tool, tool_context = _get_tool_and_context(
            invocation_context, function_call, tools_dict, tool_confirmations
        )
        function_args = dict(function_call.args or {})
        invocation_context.logger.debug("execute_tool %s", tool.name)

        function_response = await plugin_manager.run_before_tool(
            tool=tool, tool_args=function_args, tool_context=tool_context
        )

        if function_response is None:
            for callback in before_tool_callbacks or []:
                function_response = await call_maybe_async(
                    callback, tool=tool, args=function_args, tool_context=tool_context
                )
                if function_response is not None:
                    break

        if function_response is None:
            try:
                with log_timing(invocation_context.logger, f"execute_tool {tool.name}"):
                    function_response = await tool.run_async(
                        args=function_args, tool_context=tool_context
                    )
            except Exception as e:
                error_response = await plugin_manager.run_on_tool_error(
                    tool=tool, tool_args=function_args, tool_context=tool_context, error=e
                )
                if error_response is not None:
                    function_response = error_response
                else:
                    error = ToolExecutionError(tool.name, e)
                    invocation_context.logger.error(
                        "Tool execution failed and was unhandled by plugins: %s: %s",
                        tool.name,
                        e,
                    )
                    function_response = {"error": str(error)}

        normalized = _normalize_response(function_response)

        altered_response = await plugin_manager.run_after_tool(
            tool=tool, tool_args=function_args, tool_context=tool_context, result=normalized
        )
        if altered_response is None:
            for callback in after_tool_callbacks or []:
                altered_response = await call_maybe_async(
                    callback,
                    tool=tool,
                    args=function_args,
                    tool_context=tool_context,
                    tool_response=normalized,
                )
                if altered_response is not None:
                    break
        if altered_response is not None:
            function_response = altered_response

        if tool.is_long_running and function_response is None:
            continue

        response_events.append(
            _build_response_event(tool, function_response, tool_context, invocation_context)
        )

    if not response_events:
        return None
    merged_event = merge_parallel_function_response_events(response_events)
    if len(response_events) > 1:
        invocation_context.logger.debug(
            "Merged %d function responses into %s", len(response_events), merged_event.id
        )
    return merged_event


def merge_parallel_function_response_events(function_response_events: list[Event]) -> Event:
    """Merge the response events of one batch into a single event.

    Parts keep the order of the input events and actions are merged with
    merge_event_actions. A single event is returned unchanged.

    Raises:
        ValueError: If the list is empty
    """
    if not function_response_events:
        raise ValueError("No function response events provided.")
    if len(function_response_events) == 1:
        return function_response_events[0]

    merged_parts: list[Part] = []
    for event in function_response_events:
        if event.content:
            merged_parts.extend(event.content.parts)

    base_event = function_response_events[0]
    return Event(
        invocation_id=base_event.invocation_id,
        author=base_event.author,
        branch=base_event.branch,
        content=Content(role=USER_ROLE, parts=merged_parts),
        actions=merge_event_actions(e.actions for e in function_response_events),
        timestamp=base_event.timestamp,
    )


def _get_tool_and_context(
    invocation_context: InvocationContext,
    function_call: FunctionCall,
    tools_dict: dict[str, BaseTool],
    tool_confirmations: dict[str, ToolConfirmation] | None,
) -> tuple[BaseTool, ToolContext]:
    if function_call.name not in tools_dict:
        raise ConfigurationError(
            f"Function {function_call.name} is not found in the tools_dict."
        )
    tool_context = ToolContext(
        invocation_context,
        function_call_id=function_call.id,
        tool_confirmation=(tool_confirmations or {}).get(function_call.id),
    )
    return tools_dict[function_call.name], tool_context


def _normalize_response(response: Any) -> dict[str, Any]:
    if isinstance(response, BaseModel):
        return response.model_dump(mode="json")
    if isinstance(response, dict):
        return response
    return {"result": response}


def _build_response_event(
    tool: BaseTool,
    function_result: Any,
    tool_context: ToolContext,
    invocation_context: InvocationContext,
) -> Event:
    part = Part.from_function_response(
        name=tool.name,
        response=_normalize_response(function_result),
        id=tool_context.function_call_id,
    )
    return Event(
        invocation_id=invocation_context.invocation_id,
        author=invocation_context.agent.name,
        branch=invocation_context.branch,
        content=Content(role=USER_ROLE, parts=[part]),
        actions=tool_context.actions,
    )
