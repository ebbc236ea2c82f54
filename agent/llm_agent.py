"""LLM-backed agent.

Each step builds a request from the branch-visible session history, calls
the model through the model hooks, emits the model's event and dispatches
any function calls it contains. Steps repeat until a step produces a final
response: plain text, a long-running call waiting for the client, a request
for credentials or confirmation, or a transfer to another agent.
"""

from __future__ import annotations

import json
from contextlib import aclosing
from typing import TYPE_CHECKING, Any, AsyncGenerator, Callable

from pydantic import ValidationError

from config.run_config import StreamingMode
from core.constants import MODEL_ROLE, REQUEST_CONFIRMATION_FUNCTION_CALL_NAME
from core.exceptions import ConfigurationError
from core.logging_config import log_timing
from core.models import (
    Content,
    Event,
    EventActions,
    FunctionCall,
    Part,
    ToolConfirmation,
    merge_event_actions,
)
from core.utils import call_maybe_async
from llm.base_llm import BaseLlm, LlmRequest, LlmResponse
from tools.base_tool import BaseTool
from tools.function_tool import FunctionTool
from tools.transfer_to_agent import TransferToAgentTool

from .base_agent import AgentCallback, BaseAgent, _as_list
from .callback_context import CallbackContext
from .contents import build_contents
from .functions import (
    find_matching_function_call,
    generate_auth_event,
    generate_request_confirmation_event,
    get_long_running_function_calls,
    handle_function_calls,
    populate_client_function_call_id,
)
from .tool_context import ToolContext

if TYPE_CHECKING:
    from .invocation_context import InvocationContext

Instruction = str | Callable[[CallbackContext], Any]


class LlmAgent(BaseAgent):
    """An agent driven by a language model.

    Attributes:
        model: Transport used for model calls
        instruction: System instruction, or a (sync or async) function of the
            CallbackContext returning one
        tools: Tools, or plain functions wrapped as FunctionTool
        disallow_transfer_to_peers: If True, transfer_to_agent never
            offers sibling agents
        output_key: If set, the text of the final response is stored in
            session state under this key
        before_model_callbacks: Called with (callback_context, llm_request)
        after_model_callbacks: Called with (callback_context, llm_response)
        on_model_error_callbacks: Called with (callback_context, llm_request, error)
        before_tool_callbacks: Called with (tool, args, tool_context)
        after_tool_callbacks: Called with (tool, args, tool_context, tool_response)
    """

    def __init__(
        self,
        name: str,
        model: BaseLlm,
        instruction: Instruction = "",
        description: str = "",
        tools: list[BaseTool | Callable[..., Any]] | None = None,
        sub_agents: list[BaseAgent] | None = None,
        disallow_transfer_to_parent: bool = False,
        disallow_transfer_to_peers: bool = False,
        output_key: str | None = None,
        before_agent_callback: AgentCallback | list[AgentCallback] | None = None,
        after_agent_callback: AgentCallback | list[AgentCallback] | None = None,
        before_model_callback: AgentCallback | list[AgentCallback] | None = None,
        after_model_callback: AgentCallback | list[AgentCallback] | None = None,
        on_model_error_callback: AgentCallback | list[AgentCallback] | None = None,
        before_tool_callback: AgentCallback | list[AgentCallback] | None = None,
        after_tool_callback: AgentCallback | list[AgentCallback] | None = None,
    ):
        super().__init__(
            name=name,
            description=description,
            sub_agents=sub_agents,
            disallow_transfer_to_parent=disallow_transfer_to_parent,
            before_agent_callback=before_agent_callback,
            after_agent_callback=after_agent_callback,
        )
        self.model = model
        self.instruction = instruction
        self.tools = [
            tool if isinstance(tool, BaseTool) else FunctionTool(tool)
            for tool in tools or []
        ]
        self.disallow_transfer_to_peers = disallow_transfer_to_peers
        self.output_key = output_key
        self.before_model_callbacks = _as_list(before_model_callback)
        self.after_model_callbacks = _as_list(after_model_callback)
        self.on_model_error_callbacks = _as_list(on_model_error_callback)
        self.before_tool_callbacks = _as_list(before_tool_callback)
        self.after_tool_callbacks = _as_list(after_tool_callback)

    # =========================================================================
    # Tools and instructions
    # =========================================================================

    def transfer_targets(self) -> list[BaseAgent]:
        """Agents this agent may hand control to."""
        targets = list(self.sub_agents)
        parent = self.parent_agent
        if parent is not None:
            if not self.disallow_transfer_to_parent:
                targets.append(parent)
            if not self.disallow_transfer_to_peers:
                targets.extend(peer for peer in parent.sub_agents if peer is not self)
        return targets

    @property
    def canonical_tools(self) -> list[BaseTool]:
        tools = list(self.tools)
        targets = self.transfer_targets()
        if targets:
            tools.append(TransferToAgentTool([agent.name for agent in targets]))
        return tools

    async def canonical_instruction(self, ctx: InvocationContext) -> str:
        if callable(self.instruction):
            return await call_maybe_async(self.instruction, CallbackContext(ctx))
        return self.instruction

    def _transfer_instruction(self) -> str:
        targets = self.transfer_targets()
        if not targets:
            return ""
        lines = ["You have a list of other agents to transfer to:", ""]
        for target in targets:
            lines.append(f"Agent name: {target.name}")
            lines.append(f"Agent description: {target.description}")
            lines.append("")
        lines.append(
            "If you are the best to answer the question according to your "
            "description, you can answer it."
        )
        lines.append(
            "If another agent is better for answering the question according to "
            "its description, call `transfer_to_agent` function to transfer the "
            "question to that agent. When transferring, do not generate any text "
            "other than the function call."
        )
        return "\n".join(lines)

    async def _build_llm_request(self, ctx: InvocationContext) -> LlmRequest:
        llm_request = LlmRequest(model=self.model.model)
        llm_request.append_instructions(
            [await self.canonical_instruction(ctx), self._transfer_instruction()]
        )
        tool_context = ToolContext(ctx)
        for tool in self.canonical_tools:
            await tool.process_llm_request(tool_context=tool_context, llm_request=llm_request)
        llm_request.contents = build_contents(ctx.session.events, self.name, ctx.branch)
        return llm_request

    # =========================================================================
    # Loop
    # =========================================================================

    async def _run_async_impl(
        self, ctx: InvocationContext
    ) -> AsyncGenerator[Event, None]:
        turn_ended = False
        async for event in self._resume_confirmed_tool_calls(ctx):
            turn_ended = turn_ended or event.is_final_response()
            yield event
        if turn_ended:
            return

        while not ctx.is_cancelled():
            last_event = None
            async for event in self._run_one_step_async(ctx):
                last_event = event
                turn_ended = turn_ended or event.is_final_response()
                yield event
            if last_event is None or turn_ended or ctx.end_invocation:
                break

    async def _run_one_step_async(
        self, ctx: InvocationContext
    ) -> AsyncGenerator[Event, None]:
        llm_request = await self._build_llm_request(ctx)
        callback_context = CallbackContext(ctx)

        async for llm_response in self._call_llm_async(ctx, llm_request, callback_context):
            model_response_event = self._finalize_model_response_event(
                ctx, llm_request, llm_response, callback_context
            )
            if model_response_event is None:
                continue
            yield model_response_event

            if model_response_event.partial:
                continue
            if model_response_event.get_function_calls():
                async for event in self._postprocess_function_calls(
                    ctx, model_response_event, llm_request.tools_dict
                ):
                    yield event

    async def _call_llm_async(
        self,
        ctx: InvocationContext,
        llm_request: LlmRequest,
        callback_context: CallbackContext,
    ) -> AsyncGenerator[LlmResponse, None]:
        response = await self._handle_before_model_callback(llm_request, callback_context)
        if response is not None:
            yield response
            return

        ctx.increment_llm_call_count()
        stream = ctx.run_config.streaming_mode == StreamingMode.SSE

        with log_timing(ctx.logger, f"call_llm {self.model.model}"):
            async with aclosing(
                self.model.generate_content_async(llm_request, stream=stream)
            ) as responses:
                while True:
                    try:
                        llm_response = await anext(responses)
                    except StopAsyncIteration:
                        break
                    except Exception as e:
                        recovered = await self._handle_model_error(
                            llm_request, callback_context, e
                        )
                        if recovered is None:
                            raise
                        yield await self._handle_after_model_callback(
                            recovered, callback_context
                        )
                        return
                    yield await self._handle_after_model_callback(
                        llm_response, callback_context
                    )

    def _finalize_model_response_event(
        self,
        ctx: InvocationContext,
        llm_request: LlmRequest,
        llm_response: LlmResponse,
        callback_context: CallbackContext,
    ) -> Event | None:
        if llm_response.content is None and not llm_response.error_code:
            return None

        content = llm_response.content.model_copy(deep=True) if llm_response.content else None
        populate_client_function_call_id(content)
        function_calls = [p.function_call for p in content.parts if p.function_call] if content else []

        actions = EventActions()
        if not llm_response.partial:
            actions = merge_event_actions([callback_context.actions])
            if self.output_key and content and content.text and not function_calls:
                actions.state_delta[self.output_key] = content.text

        return Event(
            invocation_id=ctx.invocation_id,
            author=self.name,
            branch=ctx.branch,
            content=content,
            actions=actions,
            long_running_tool_ids=get_long_running_function_calls(
                function_calls, llm_request.tools_dict
            )
            or None,
            partial=llm_response.partial,
            turn_complete=llm_response.turn_complete,
            error_code=llm_response.error_code,
            error_message=llm_response.error_message,
        )

    async def _postprocess_function_calls(
        self,
        ctx: InvocationContext,
        function_call_event: Event,
        tools_dict: dict[str, BaseTool],
        filters: set[str] | None = None,
        tool_confirmations: dict[str, ToolConfirmation] | None = None,
    ) -> AsyncGenerator[Event, None]:
        function_response_event = await handle_function_calls(
            ctx,
            function_call_event,
            tools_dict,
            self.before_tool_callbacks,
            self.after_tool_callbacks,
            filters=filters,
            tool_confirmations=tool_confirmations,
        )
        if function_response_event is None:
            return

        auth_event = generate_auth_event(ctx, function_response_event)
        if auth_event is not None:
            yield auth_event
        confirmation_event = generate_request_confirmation_event(
            ctx, function_call_event, function_response_event
        )
        if confirmation_event is not None:
            yield confirmation_event

        yield function_response_event

        transfer_to = function_response_event.actions.transfer_to_agent
        if transfer_to:
            agent_to_run = self.root_agent.find_agent(transfer_to)
            if agent_to_run is None:
                raise ConfigurationError(
                    f"Agent {transfer_to} not found in the agent tree."
                )
            ctx.logger.info("Transferring from %s to %s", self.name, transfer_to)
            async for event in agent_to_run.run_async(ctx):
                yield event

    async def _resume_confirmed_tool_calls(
        self, ctx: InvocationContext
    ) -> AsyncGenerator[Event, None]:
        """Replay tool calls the client has answered a confirmation for."""
        if ctx.user_content is None:
            return

        events = ctx.session.events
        confirmations: dict[str, ToolConfirmation] = {}
        original_calls: list[FunctionCall] = []
        for part in ctx.user_content.parts:
            response = part.function_response
            if response is None or response.name != REQUEST_CONFIRMATION_FUNCTION_CALL_NAME:
                continue
            match = find_matching_function_call(events, response.id) if response.id else None
            if match is None:
                continue
            request_event, request_call = match
            # Only the agent that asked replays, and only once per answer.
            if request_event.author != self.name:
                continue
            original = FunctionCall.model_validate(request_call.args["originalFunctionCall"])
            if _answered_since(events, response.id, original.id):
                continue
            try:
                confirmation = _parse_tool_confirmation(response.response)
            except (json.JSONDecodeError, ValidationError) as e:
                ctx.logger.warning(
                    "Malformed confirmation answer for %s, treating it as rejected: %s",
                    original.id,
                    e,
                )
                confirmation = ToolConfirmation(confirmed=False)
            confirmations[original.id] = confirmation
            original_calls.append(original)

        if not original_calls:
            return

        ctx.logger.debug("Replaying %d confirmed tool call(s)", len(original_calls))
        llm_request = await self._build_llm_request(ctx)
        function_call_event = Event(
            invocation_id=ctx.invocation_id,
            author=self.name,
            branch=ctx.branch,
            content=Content(
                role=MODEL_ROLE, parts=[Part(function_call=call) for call in original_calls]
            ),
        )
        async for event in self._postprocess_function_calls(
            ctx,
            function_call_event,
            llm_request.tools_dict,
            filters=set(confirmations),
            tool_confirmations=confirmations,
        ):
            yield event

    # =========================================================================
    # Model hooks
    # =========================================================================

    async def _handle_before_model_callback(
        self, llm_request: LlmRequest, callback_context: CallbackContext
    ) -> LlmResponse | None:
        plugin_manager = callback_context.invocation_context.plugin_manager
        response = await plugin_manager.run_before_model(
            callback_context=callback_context, llm_request=llm_request
        )
        if response is not None:
            return response
        for callback in self.before_model_callbacks:
            response = await call_maybe_async(
                callback, callback_context=callback_context, llm_request=llm_request
            )
            if response is not None:
                return response
        return None

    async def _handle_after_model_callback(
        self, llm_response: LlmResponse, callback_context: CallbackContext
    ) -> LlmResponse:
        plugin_manager = callback_context.invocation_context.plugin_manager
        altered = await plugin_manager.run_after_model(
            callback_context=callback_context, llm_response=llm_response
        )
        if altered is None:
            for callback in self.after_model_callbacks:
                altered = await call_maybe_async(
                    callback, callback_context=callback_context, llm_response=llm_response
                )
                if altered is not None:
                    break
        return altered if altered is not None else llm_response

    async def _handle_model_error(
        self,
        llm_request: LlmRequest,
        callback_context: CallbackContext,
        error: Exception,
    ) -> LlmResponse | None:
        plugin_manager = callback_context.invocation_context.plugin_manager
        response = await plugin_manager.run_on_model_error(
            callback_context=callback_context, llm_request=llm_request, error=error
        )
        if response is not None:
            return response
        for callback in self.on_model_error_callbacks:
            response = await call_maybe_async(
                callback,
                callback_context=callback_context,
                llm_request=llm_request,
                error=error,
            )
            if response is not None:
                return response
        return None


def _answered_since(events: list[Event], answer_id: str, function_call_id: str) -> bool:
    """Whether the call already got a response after the client's answer."""
    answer_index = None
    for index in range(len(events) - 1, -1, -1):
        if any(r.id == answer_id for r in events[index].get_function_responses()):
            answer_index = index
            break
    if answer_index is None:
        return False
    return any(
        r.id == function_call_id
        for event in events[answer_index + 1:]
        for r in event.get_function_responses()
    )


def _parse_tool_confirmation(response: dict[str, Any]) -> ToolConfirmation:
    """Read the client's answer to a confirmation request.

    Accepts the ToolConfirmation fields directly, or a single "response" key
    holding them as a JSON string.

    Raises:
        json.JSONDecodeError: If the "response" string is not JSON
        ValidationError: If the fields do not form a ToolConfirmation
    """
    if set(response) == {"response"} and isinstance(response["response"], str):
        return ToolConfirmation.model_validate(json.loads(response["response"]))
    return ToolConfirmation.model_validate(response)
