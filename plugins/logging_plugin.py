"""Plugin that logs the invocation at every hook point.

Intended for terminal debugging: user messages, agent flow, model requests
and responses, tool calls and results, events and errors all go to the
``plugins.logging_plugin`` logger. It never changes the invocation.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from .base_plugin import BasePlugin

if TYPE_CHECKING:
    from core.models import Content

logger = logging.getLogger(__name__)


class LoggingPlugin(BasePlugin):
    """Logs important information at each callback point.

    Attributes:
        name: Plugin name
        level: Log level used for every line
    """

    def __init__(self, name: str = "logging_plugin", level: int = logging.INFO):
        super().__init__(name)
        self.level = level

    async def on_user_message(self, *, invocation_context, user_message):
        self._log("USER MESSAGE RECEIVED")
        self._log(f"   Invocation ID: {invocation_context.invocation_id}")
        self._log(f"   Session ID: {invocation_context.session.id}")
        self._log(f"   User ID: {invocation_context.user_id}")
        self._log(f"   App Name: {invocation_context.app_name}")
        self._log(f"   Root Agent: {invocation_context.agent.name}")
        self._log(f"   User Content: {self._format_content(user_message)}")
        if invocation_context.branch:
            self._log(f"   Branch: {invocation_context.branch}")
        return None

    async def before_run(self, *, invocation_context):
        self._log("INVOCATION STARTING")
        self._log(f"   Invocation ID: {invocation_context.invocation_id}")
        self._log(f"   Root Agent: {invocation_context.agent.name}")
        return None

    async def on_event(self, *, invocation_context, event):
        self._log("EVENT YIELDED")
        self._log(f"   Event ID: {event.id}")
        self._log(f"   Author: {event.author}")
        self._log(f"   Content: {self._format_content(event.content)}")
        self._log(f"   Final Response: {event.is_final_response()}")

        function_calls = event.get_function_calls()
        if function_calls:
            self._log(f"   Function Calls: {[fc.name for fc in function_calls]}")
        function_responses = event.get_function_responses()
        if function_responses:
            self._log(
                f"   Function Responses: {[fr.name for fr in function_responses]}"
            )
        if event.long_running_tool_ids:
            self._log(f"   Long Running Tools: {sorted(event.long_running_tool_ids)}")
        return None

    async def after_run(self, *, invocation_context):
        self._log("INVOCATION COMPLETED")
        self._log(f"   Invocation ID: {invocation_context.invocation_id}")
        self._log(f"   Root Agent: {invocation_context.agent.name}")
        return None

    async def before_agent(self, *, agent, callback_context):
        self._log("AGENT STARTING")
        self._log(f"   Agent Name: {callback_context.agent_name}")
        self._log(f"   Invocation ID: {callback_context.invocation_id}")
        if callback_context.invocation_context.branch:
            self._log(f"   Branch: {callback_context.invocation_context.branch}")
        return None

    async def after_agent(self, *, agent, callback_context):
        self._log("AGENT COMPLETED")
        self._log(f"   Agent Name: {callback_context.agent_name}")
        self._log(f"   Invocation ID: {callback_context.invocation_id}")
        return None

    async def before_model(self, *, callback_context, llm_request):
        self._log("LLM REQUEST")
        self._log(f"   Model: {llm_request.model or 'default'}")
        self._log(f"   Agent: {callback_context.agent_name}")
        if llm_request.system_instruction:
            self._log(
                f"   System Instruction: '{_truncate(llm_request.system_instruction)}'"
            )
        if llm_request.tools_dict:
            self._log(f"   Available Tools: {list(llm_request.tools_dict)}")
        return None

    async def after_model(self, *, callback_context, llm_response):
        self._log("LLM RESPONSE")
        self._log(f"   Agent: {callback_context.agent_name}")
        if llm_response.error_code:
            self._log(f"   ERROR - Code: {llm_response.error_code}")
            self._log(f"   Error Message: {llm_response.error_message}")
        else:
            self._log(f"   Content: {self._format_content(llm_response.content)}")
            if llm_response.partial:
                self._log(f"   Partial: {llm_response.partial}")
            if llm_response.turn_complete is not None:
                self._log(f"   Turn Complete: {llm_response.turn_complete}")
        if llm_response.usage:
            self._log(
                f"   Token Usage - Input: {llm_response.usage.get('input_tokens')}, "
                f"Output: {llm_response.usage.get('output_tokens')}"
            )
        return None

    async def on_model_error(self, *, callback_context, llm_request, error):
        self._log("LLM ERROR")
        self._log(f"   Agent: {callback_context.agent_name}")
        self._log(f"   Error: {error}")
        return None

    async def before_tool(self, *, tool, tool_args, tool_context):
        self._log("TOOL STARTING")
        self._log(f"   Tool Name: {tool.name}")
        self._log(f"   Agent: {tool_context.agent_name}")
        self._log(f"   Function Call ID: {tool_context.function_call_id}")
        self._log(f"   Arguments: {_format_args(tool_args)}")
        return None

    async def after_tool(self, *, tool, tool_args, tool_context, result):
        self._log("TOOL COMPLETED")
        self._log(f"   Tool Name: {tool.name}")
        self._log(f"   Agent: {tool_context.agent_name}")
        self._log(f"   Function Call ID: {tool_context.function_call_id}")
        self._log(f"   Result: {_format_args(result)}")
        return None

    async def on_tool_error(self, *, tool, tool_args, tool_context, error):
        self._log("TOOL ERROR")
        self._log(f"   Tool Name: {tool.name}")
        self._log(f"   Agent: {tool_context.agent_name}")
        self._log(f"   Function Call ID: {tool_context.function_call_id}")
        self._log(f"   Arguments: {_format_args(tool_args)}")
        self._log(f"   Error: {error}")
        return None

    def _log(self, message: str) -> None:
        logger.log(self.level, "[%s] %s", self.name, message)

    def _format_content(self, content: Content | None, max_length: int = 200) -> str:
        if content is None or not content.parts:
            return "None"
        formatted = []
        for part in content.parts:
            if part.text:
                formatted.append(f"text: '{_truncate(part.text.strip(), max_length)}'")
            elif part.function_call:
                formatted.append(f"function_call: {part.function_call.name}")
            elif part.function_response:
                formatted.append(f"function_response: {part.function_response.name}")
            else:
                formatted.append("other_part")
        return " | ".join(formatted)


def _truncate(text: str, max_length: int = 200) -> str:
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


def _format_args(args: dict[str, Any] | None, max_length: int = 300) -> str:
    if not args:
        return "{}"
    return _truncate(json.dumps(args, default=str), max_length)
