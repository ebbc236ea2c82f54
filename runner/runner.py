"""Runner: drives one turn of an agent application.

Per turn:
1. load the session and build the invocation context
2. on_user_message may replace the message, which is then persisted
3. before_run may end the turn with a canned response
4. resolve the agent to run and execute it
5. for every event: on_event may replace it, it is persisted, then yielded
6. after_run
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import Any, AsyncGenerator

from agent.base_agent import BaseAgent
from agent.invocation_context import InvocationContext
from config.run_config import RunConfig
from core.constants import MODEL_AUTHOR, MODEL_ROLE, USER_AUTHOR
from core.exceptions import ConfigurationError, SessionNotFoundError
from core.logging_config import log_timing
from core.models import Content, Event, EventActions, Session, new_invocation_id
from core.sessions import BaseSessionService
from plugins.base_plugin import BasePlugin
from plugins.manager import PluginManager

from .app import App
from .resolution import find_agent_to_run

logger = logging.getLogger(__name__)


class Runner:
    """Runs agents within sessions.

    Attributes:
        app_name: Application name sessions are looked up under
        agent: Root agent
        session_service: Session store
        plugin_manager: Application-wide plugins
        run_config: Default run options
    """

    def __init__(
        self,
        *,
        session_service: BaseSessionService,
        app: App | None = None,
        app_name: str | None = None,
        agent: BaseAgent | None = None,
        plugins: list[BasePlugin] | None = None,
        plugin_timeout_s: float | None = None,
    ):
        """Initialize the runner from an App or from its parts.

        Args:
            session_service: Session store
            app: Application; supplies name, root agent, plugins and defaults
            app_name: Application name, when no app is given
            agent: Root agent, when no app is given
            plugins: Plugins, when no app is given
            plugin_timeout_s: Optional timeout for each plugin hook call

        Raises:
            ConfigurationError: If both or neither of app and agent are given
        """
        if app is not None:
            if agent is not None or plugins is not None:
                raise ConfigurationError(
                    "Pass either an app or an agent with plugins, not both."
                )
            app_name = app_name or app.name
            agent = app.root_agent
            plugins = app.plugins
            run_config = app.run_config
        else:
            run_config = RunConfig()
        if agent is None or not app_name:
            raise ConfigurationError("A runner needs an app, or an app_name and an agent.")

        self.app_name = app_name
        self.agent = agent
        self.session_service = session_service
        self.plugin_manager = PluginManager(plugins, timeout_s=plugin_timeout_s)
        self.run_config = run_config

    async def run_async(
        self,
        *,
        user_id: str,
        session_id: str,
        new_message: Content,
        state_delta: dict[str, Any] | None = None,
        run_config: RunConfig | None = None,
        cancellation: asyncio.Event | None = None,
    ) -> AsyncGenerator[Event, None]:
        """Run one turn and yield its events.

        Every non-partial event is persisted before it is yielded.

        Args:
            user_id: Owner of the session
            session_id: Session to run in
            new_message: The incoming message
            state_delta: State applied together with the message
            run_config: Options for this turn, defaults to the runner's
            cancellation: Once set, no further events are pulled

        Raises:
            SessionNotFoundError: If the session does not exist
            PluginExecutionError: If a plugin hook raises; already persisted
                events are kept
        """
        session = await self.session_service.get_session(
            app_name=self.app_name, user_id=user_id, session_id=session_id
        )
        if session is None:
            raise SessionNotFoundError(session_id)

        ctx = InvocationContext(
            invocation_id=new_invocation_id(),
            session=session,
            agent=self.agent,
            plugin_manager=self.plugin_manager,
            session_service=self.session_service,
            run_config=run_config or self.run_config,
            user_content=new_message,
            cancellation=cancellation,
        )

        with log_timing(ctx.logger, f"invocation {ctx.invocation_id}", logging.INFO):
            modified_message = await self.plugin_manager.run_on_user_message(
                invocation_context=ctx, user_message=new_message
            )
            if modified_message is not None:
                new_message = modified_message
                ctx.user_content = modified_message

            if new_message.parts:
                await self._append_new_message_to_session(
                    session, new_message, ctx, state_delta
                )

            early_exit = await self.plugin_manager.run_before_run(invocation_context=ctx)
            if early_exit is not None:
                ctx.logger.debug("before_run ended the turn early")
                event = Event(
                    invocation_id=ctx.invocation_id,
                    author=MODEL_AUTHOR,
                    content=_as_model_content(early_exit),
                )
                await self.session_service.append_event(session, event)
                yield event
            else:
                agent = find_agent_to_run(session.events, new_message, self.agent)
                ctx.logger.debug("Resolved agent %s", agent.name)
                async for event in self._exec_with_plugin(ctx, session, agent):
                    yield event

            await self.plugin_manager.run_after_run(invocation_context=ctx)

    def run(
        self,
        *,
        user_id: str,
        session_id: str,
        new_message: Content,
        state_delta: dict[str, Any] | None = None,
        run_config: RunConfig | None = None,
    ) -> list[Event]:
        """Synchronous run_async: runs the turn to completion.

        Must not be called from a running event loop.

        Returns:
            All events of the turn, in order
        """

        async def _collect() -> list[Event]:
            return [
                event
                async for event in self.run_async(
                    user_id=user_id,
                    session_id=session_id,
                    new_message=new_message,
                    state_delta=state_delta,
                    run_config=run_config,
                )
            ]

        return asyncio.run(_collect())

    async def _exec_with_plugin(
        self, ctx: InvocationContext, session: Session, agent: BaseAgent
    ) -> AsyncGenerator[Event, None]:
        async with aclosing(agent.run_async(ctx)) as events:
            async for event in events:
                modified_event = await self.plugin_manager.run_on_event(
                    invocation_context=ctx, event=event
                )
                if modified_event is not None:
                    event = modified_event

                if not event.partial:
                    await self.session_service.append_event(session, event)
                yield event

                if ctx.is_cancelled():
                    ctx.logger.info("Invocation cancelled by the caller")
                    break

    async def _append_new_message_to_session(
        self,
        session: Session,
        new_message: Content,
        ctx: InvocationContext,
        state_delta: dict[str, Any] | None,
    ) -> None:
        event = Event(
            invocation_id=ctx.invocation_id,
            author=USER_AUTHOR,
            content=new_message,
            actions=EventActions(state_delta=dict(state_delta or {})),
        )
        await self.session_service.append_event(session, event)


def _as_model_content(content: Content) -> Content:
    if content.role:
        return content
    return content.model_copy(update={"role": MODEL_ROLE})
