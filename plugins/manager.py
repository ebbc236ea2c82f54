"""Plugin manager for executing hooks across registered plugins.

Plugins run in registration order. For every hook the first plugin that
returns a non-None value wins: the value is handed back to the caller and
the remaining plugins are not called. A plugin that raises aborts the hook
with a PluginExecutionError naming the plugin and the hook.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from core.exceptions import ConfigurationError, PluginExecutionError
from core.utils import call_maybe_async

from .base_plugin import BasePlugin

if TYPE_CHECKING:
    from agent.base_agent import BaseAgent
    from agent.callback_context import CallbackContext
    from agent.invocation_context import InvocationContext
    from agent.tool_context import ToolContext
    from core.models import Content, Event
    from llm.base_llm import LlmRequest, LlmResponse
    from tools.base_tool import BaseTool

logger = logging.getLogger(__name__)


class PluginManager:
    """Holds the ordered plugin list of a runner and dispatches hooks.

    Attributes:
        plugins: Registered plugins in execution order
        timeout_s: Optional timeout for each individual hook call
    """

    def __init__(
        self,
        plugins: list[BasePlugin] | None = None,
        timeout_s: float | None = None,
    ):
        """Initialize the manager.

        Args:
            plugins: Plugins to register, in execution order
            timeout_s: Timeout for each hook call, None for no limit

        Raises:
            ConfigurationError: If two plugins share a name
        """
        self.plugins: list[BasePlugin] = []
        self.timeout_s = timeout_s
        for plugin in plugins or []:
            self.register_plugin(plugin)

    def register_plugin(self, plugin: BasePlugin) -> None:
        """Append a plugin to the execution order.

        Raises:
            ConfigurationError: If a plugin with the same name is registered
        """
        if any(p.name == plugin.name for p in self.plugins):
            raise ConfigurationError(
                f"Plugin with name '{plugin.name}' already registered."
            )
        self.plugins.append(plugin)
        logger.debug("Registered plugin %s", plugin.name)

    def get_plugin(self, name: str) -> BasePlugin | None:
        """Look up a registered plugin by name."""
        for plugin in self.plugins:
            if plugin.name == name:
                return plugin
        return None

    def get_plugin_count(self) -> int:
        return len(self.plugins)

    # =========================================================================
    # Runner lifecycle
    # =========================================================================

    async def run_on_user_message(
        self, *, invocation_context: InvocationContext, user_message: Content
    ) -> Content | None:
        return await self._run_callbacks(
            "on_user_message",
            invocation_context=invocation_context,
            user_message=user_message,
        )

    async def run_before_run(
        self, *, invocation_context: InvocationContext
    ) -> Content | None:
        return await self._run_callbacks(
            "before_run", invocation_context=invocation_context
        )

    async def run_on_event(
        self, *, invocation_context: InvocationContext, event: Event
    ) -> Event | None:
        return await self._run_callbacks(
            "on_event", invocation_context=invocation_context, event=event
        )

    async def run_after_run(self, *, invocation_context: InvocationContext) -> None:
        await self._run_callbacks("after_run", invocation_context=invocation_context)

    # =========================================================================
    # Agent lifecycle
    # =========================================================================

    async def run_before_agent(
        self, *, agent: BaseAgent, callback_context: CallbackContext
    ) -> Content | None:
        return await self._run_callbacks(
            "before_agent", agent=agent, callback_context=callback_context
        )

    async def run_after_agent(
        self, *, agent: BaseAgent, callback_context: CallbackContext
    ) -> Content | None:
        return await self._run_callbacks(
            "after_agent", agent=agent, callback_context=callback_context
        )

    # =========================================================================
    # Model
    # =========================================================================

    async def run_before_model(
        self, *, callback_context: CallbackContext, llm_request: LlmRequest
    ) -> LlmResponse | None:
        return await self._run_callbacks(
            "before_model",
            callback_context=callback_context,
            llm_request=llm_request,
        )

    async def run_after_model(
        self, *, callback_context: CallbackContext, llm_response: LlmResponse
    ) -> LlmResponse | None:
        return await self._run_callbacks(
            "after_model",
            callback_context=callback_context,
            llm_response=llm_response,
        )

    async def run_on_model_error(
        self,
        *,
        callback_context: CallbackContext,
        llm_request: LlmRequest,
        error: Exception,
    ) -> LlmResponse | None:
        return await self._run_callbacks(
            "on_model_error",
            callback_context=callback_context,
            llm_request=llm_request,
            error=error,
        )

    # =========================================================================
    # Tools
    # =========================================================================

    async def run_before_tool(
        self,
        *,
        tool: BaseTool,
        tool_args: dict[str, Any],
        tool_context: ToolContext,
    ) -> dict[str, Any] | None:
        return await self._run_callbacks(
            "before_tool", tool=tool, tool_args=tool_args, tool_context=tool_context
        )

    async def run_after_tool(
        self,
        *,
        tool: BaseTool,
        tool_args: dict[str, Any],
        tool_context: ToolContext,
        result: dict[str, Any],
    ) -> dict[str, Any] | None:
        return await self._run_callbacks(
            "after_tool",
            tool=tool,
            tool_args=tool_args,
            tool_context=tool_context,
            result=result,
        )

    async def run_on_tool_error(
        self,
        *,
        tool: BaseTool,
        tool_args: dict[str, Any],
        tool_context: ToolContext,
        error: Exception,
    ) -> dict[str, Any] | None:
        return await self._run_callbacks(
            "on_tool_error",
            tool=tool,
            tool_args=tool_args,
            tool_context=tool_context,
            error=error,
        )

    async def _run_callbacks(self, hook_name: str, **kwargs: Any) -> Any:
        """Run one hook across all plugins, stopping at the first result.

        Args:
            hook_name: Name of the hook method on each plugin
            **kwargs: Keyword arguments forwarded to the hook

        Returns:
            The first non-None value returned by a plugin, or None

        Raises:
            PluginExecutionError: If a plugin raises or times out
        """
        for plugin in self.plugins:
            handler = getattr(plugin, hook_name, None)
            if handler is None:
                continue
            try:
                async with asyncio.timeout(self.timeout_s):
                    result = await call_maybe_async(handler, **kwargs)
            except Exception as e:
                logger.error(
                    "Error in plugin '%s' during '%s' callback: %s",
                    plugin.name,
                    hook_name,
                    e,
                )
                raise PluginExecutionError(plugin.name, hook_name, e) from e

            if result is not None:
                logger.debug(
                    "Plugin %s returned a value for %s, exiting early",
                    plugin.name,
                    hook_name,
                )
                return result
        return None

    def __len__(self) -> int:
        """Return the number of registered plugins."""
        return len(self.plugins)

    def __bool__(self) -> bool:
        """Return True if there are any plugins."""
        return len(self.plugins) > 0
