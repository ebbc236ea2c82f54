"""LLM transport backed by a pydantic-ai Model.

Any pydantic-ai model works: a provider model such as
``"openai:gpt-4o"`` given by name, or a Model instance
(including pydantic_ai.models.function.FunctionModel in tests).
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from typing import AsyncGenerator

from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelRequestPart,
    ModelResponse,
    ModelResponsePart,
    ModelResponseStreamEvent,
    PartDeltaEvent,
    PartStartEvent,
    SystemPromptPart,
    TextPart,
    TextPartDelta,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models import Model, ModelRequestParameters, infer_model
from pydantic_ai.tools import ToolDefinition

from core.constants import MODEL_ROLE
from core.models import Content, Part, gen_id

from .base_llm import BaseLlm, LlmRequest, LlmResponse

logger = logging.getLogger(__name__)


class PydanticAILlm(BaseLlm):
    """Adapts a pydantic-ai Model to the BaseLlm contract."""

    def __init__(self, model: Model | str):
        self._model = infer_model(model) if isinstance(model, str) else model
        super().__init__(self._model.model_name)

    async def generate_content_async(
        self, llm_request: LlmRequest, stream: bool = False
    ) -> AsyncGenerator[LlmResponse, None]:
        messages = to_model_messages(llm_request)
        params = ModelRequestParameters(
            function_tools=[
                ToolDefinition(
                    name=decl.name,
                    description=decl.description,
                    parameters_json_schema=decl.parameters
                    or {"type": "object", "properties": {}},
                )
                for decl in llm_request.function_declarations
            ],
            allow_text_output=True,
        )

        if not stream:
            response = await self._model.request(messages, None, params)
            yield from_model_response(response)
            return

        async with self._model.request_stream(messages, None, params) as streamed:
            async for event in streamed:
                chunk = _text_chunk(event)
                if chunk:
                    yield LlmResponse(
                        content=Content(role=MODEL_ROLE, parts=[Part.from_text(chunk)]),
                        partial=True,
                    )
            yield from_model_response(streamed.get())


def _text_chunk(event: ModelResponseStreamEvent) -> str | None:
    # A text part opens with its first chunk; later chunks arrive as deltas.
    if isinstance(event, PartStartEvent) and isinstance(event.part, TextPart):
        return event.part.content
    if isinstance(event, PartDeltaEvent) and isinstance(event.delta, TextPartDelta):
        return event.delta.content_delta
    return None


def to_model_messages(llm_request: LlmRequest) -> list[ModelMessage]:
    """Convert request contents to pydantic-ai messages.

    Consecutive contents with the same role are kept as separate messages.
    Function calls without an id get a generated one, and function responses
    without an id are paired with the oldest unanswered call of the same name.
    """
    messages: list[ModelMessage] = []
    pending_ids: dict[str, deque[str]] = defaultdict(deque)

    if llm_request.system_instruction:
        messages.append(
            ModelRequest(parts=[SystemPromptPart(content=llm_request.system_instruction)])
        )

    for content in llm_request.contents:
        if content.role == MODEL_ROLE:
            response_parts: list[ModelResponsePart] = []
            for part in content.parts:
                if part.text:
                    response_parts.append(TextPart(content=part.text))
                elif part.function_call:
                    call_id = part.function_call.id or gen_id("call_")
                    if not part.function_call.id:
                        pending_ids[part.function_call.name].append(call_id)
                    response_parts.append(
                        ToolCallPart(
                            tool_name=part.function_call.name,
                            args=part.function_call.args,
                            tool_call_id=call_id,
                        )
                    )
            if response_parts:
                messages.append(ModelResponse(parts=response_parts))
        else:
            request_parts: list[ModelRequestPart] = []
            for part in content.parts:
                if part.text:
                    request_parts.append(UserPromptPart(content=part.text))
                elif part.function_response:
                    response = part.function_response
                    call_id = response.id
                    if not call_id:
                        queue = pending_ids[response.name]
                        call_id = queue.popleft() if queue else gen_id("call_")
                    request_parts.append(
                        ToolReturnPart(
                            tool_name=response.name,
                            content=response.response,
                            tool_call_id=call_id,
                        )
                    )
            if request_parts:
                messages.append(ModelRequest(parts=request_parts))

    return messages


def from_model_response(response: ModelResponse) -> LlmResponse:
    """Convert a pydantic-ai response to an LlmResponse."""
    parts: list[Part] = []
    for part in response.parts:
        if isinstance(part, TextPart):
            if part.content:
                parts.append(Part.from_text(part.content))
        elif isinstance(part, ToolCallPart):
            parts.append(
                Part.from_function_call(
                    part.tool_name, part.args_as_dict(), id=part.tool_call_id
                )
            )
        else:
            logger.debug("Ignoring unsupported response part %s", type(part).__name__)

    usage = None
    if response.usage is not None:
        usage = {
            "input_tokens": getattr(response.usage, "input_tokens", None),
            "output_tokens": getattr(response.usage, "output_tokens", None),
        }

    return LlmResponse(
        content=Content(role=MODEL_ROLE, parts=parts) if parts else None,
        turn_complete=True,
        usage=usage,
    )
