"""Agent tree and the lifecycle every agent runs through."""

from __future__ import annotations

import logging
import weakref
from typing import TYPE_CHECKING, Any, AsyncGenerator, Callable

from core.constants import USER_AUTHOR
from core.exceptions import ConfigurationError
from core.logging_config import log_timing
from core.models import Content, Event
from core.utils import call_maybe_async

from .callback_context import CallbackContext

if TYPE_CHECKING:
    from .invocation_context import InvocationContext

logger = logging.getLogger(__name__)

AgentCallback = Callable[..., Any]


def _as_list(callbacks: AgentCallback | list[AgentCallback] | None) -> list[AgentCallback]:
    if callbacks is None:
        return []
    if callable(callbacks):
        return [callbacks]
    return list(callbacks)


class BaseAgent:
    """Base class for all agents.

    Agents form a tree: each agent owns its sub_agents and holds a weak
    reference to its parent. Agent-level callbacks run after the plugins of
    the same hook and take keyword arguments; returning a Content
    short-circuits like a plugin would.

    Attributes:
        name: Unique name within the tree; a valid identifier, not "user"
        description: One-line description used when other agents decide
            whether to transfer to this one
        sub_agents: Child agents
        disallow_transfer_to_parent: If True, control never returns to this
            agent by resumption and it cannot hand control back to its parent
        before_agent_callbacks: Called with callback_context before the body
        after_agent_callbacks: Called with callback_context after the body
    """

    def __init__(
        self,
        name: str,
        description: str = "",
        sub_agents: list[BaseAgent] | None = None,
        disallow_transfer_to_parent: bool = False,
        before_agent_callback: AgentCallback | list[AgentCallback] | None = None,
        after_agent_callback: AgentCallback | list[AgentCallback] | None = None,
    ):
        if not name.isidentifier():
            raise ConfigurationError(
                f"Invalid agent name: {name!r}. Agent names must be valid identifiers."
            )
        if name == USER_AUTHOR:
            raise ConfigurationError(
                f"Agent name cannot be '{USER_AUTHOR}', it is reserved for user input."
            )

        self.name = name
        self.description = description
        self.disallow_transfer_to_parent = disallow_transfer_to_parent
        self.before_agent_callbacks = _as_list(before_agent_callback)
        self.after_agent_callbacks = _as_list(after_agent_callback)
        self._parent_ref: weakref.ref[BaseAgent] | None = None
        self.sub_agents: list[BaseAgent] = []
        for sub_agent in sub_agents or []:
            self.add_sub_agent(sub_agent)

    # =========================================================================
    # Tree
    # =========================================================================

    def add_sub_agent(self, sub_agent: BaseAgent) -> None:
        """Attach a child agent.

        Raises:
            ConfigurationError: If the child already has a parent or its name
                is taken by a sibling
        """
        if sub_agent.parent_agent is not None:
            raise ConfigurationError(
                f"Agent {sub_agent.name} already has a parent agent "
                f"{sub_agent.parent_agent.name}, cannot add it to {self.name}."
            )
        if any(existing.name == sub_agent.name for existing in self.sub_agents):
            raise ConfigurationError(
                f"Agent {self.name} already has a sub-agent named {sub_agent.name}."
            )
        sub_agent._parent_ref = weakref.ref(self)
        self.sub_agents.append(sub_agent)

    @property
    def parent_agent(self) -> BaseAgent | None:
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def root_agent(self) -> BaseAgent:
        agent = self
        while agent.parent_agent is not None:
            agent = agent.parent_agent
        return agent

    @property
    def branch_path(self) -> str | None:
        """Dotted names from below the root down to this agent.

        None for the root, "child" for its direct children, "child.grandchild"
        one level further down.
        """
        names = []
        agent = self
        while agent.parent_agent is not None:
            names.append(agent.name)
            agent = agent.parent_agent
        return ".".join(reversed(names)) or None

    def find_agent(self, name: str) -> BaseAgent | None:
        """Find this agent or a descendant by name."""
        if self.name == name:
            return self
        return self.find_sub_agent(name)

    def find_sub_agent(self, name: str) -> BaseAgent | None:
        """Find a descendant by name, depth first."""
        for sub_agent in self.sub_agents:
            found = sub_agent.find_agent(name)
            if found is not None:
                return found
        return None

    # =========================================================================
    # Execution
    # =========================================================================

    async def run_async(
        self, parent_context: InvocationContext
    ) -> AsyncGenerator[Event, None]:
        """Run this agent and yield its events.

        Order: before_agent (plugins, then agent callbacks), the agent body,
        after_agent (plugins, then agent callbacks). A before_agent Content
        replaces the body.

        Args:
            parent_context: Context of the caller, not modified
        """
        ctx = parent_context.create_child_context(self)

        with log_timing(ctx.logger, f"agent {self.name}"):
            event = await self._handle_before_agent_callback(ctx)
            if event is not None:
                yield event
            if ctx.end_invocation:
                return

            async for event in self._run_async_impl(ctx):
                yield event

            if ctx.end_invocation:
                return

            event = await self._handle_after_agent_callback(ctx)
            if event is not None:
                yield event

    async def _run_async_impl(
        self, ctx: InvocationContext
    ) -> AsyncGenerator[Event, None]:
        """The agent body. Subclasses must override."""
        raise NotImplementedError(
            f"_run_async_impl for {type(self).__name__} is not implemented."
        )
        yield  # pragma: no cover

    async def _handle_before_agent_callback(self, ctx: InvocationContext) -> Event | None:
        callback_context = CallbackContext(ctx)

        content = await ctx.plugin_manager.run_before_agent(
            agent=self, callback_context=callback_context
        )
        if content is None:
            for callback in self.before_agent_callbacks:
                content = await call_maybe_async(callback, callback_context=callback_context)
                if content is not None:
                    break

        if content is not None:
            ctx.logger.debug("before_agent short-circuited %s", self.name)
            ctx.end_invocation = True
            return self._callback_event(ctx, callback_context, content)
        if callback_context.state.has_delta():
            return self._callback_event(ctx, callback_context, None)
        return None

    async def _handle_after_agent_callback(self, ctx: InvocationContext) -> Event | None:
        callback_context = CallbackContext(ctx)

        content = await ctx.plugin_manager.run_after_agent(
            agent=self, callback_context=callback_context
        )
        if content is None:
            for callback in self.after_agent_callbacks:
                content = await call_maybe_async(callback, callback_context=callback_context)
                if content is not None:
                    break

        if content is not None or callback_context.state.has_delta():
            return self._callback_event(ctx, callback_context, content)
        return None

    def _callback_event(
        self,
        ctx: InvocationContext,
        callback_context: CallbackContext,
        content: Content | None,
    ) -> Event:
        return Event(
            invocation_id=ctx.invocation_id,
            author=self.name,
            branch=ctx.branch,
            content=content,
            actions=callback_context.actions,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
