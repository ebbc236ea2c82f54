"""Runner wired to an in-memory session store, for tests and local use."""

from __future__ import annotations

from agent.base_agent import BaseAgent
from config.defaults import DEFAULT_APP_NAME
from core.sessions import InMemorySessionService
from plugins.base_plugin import BasePlugin

from .app import App
from .runner import Runner


class InMemoryRunner(Runner):
    """A Runner whose sessions live in process memory."""

    def __init__(
        self,
        agent: BaseAgent | None = None,
        *,
        app_name: str | None = None,
        plugins: list[BasePlugin] | None = None,
        app: App | None = None,
    ):
        if app is not None:
            super().__init__(session_service=InMemorySessionService(), app=app)
        else:
            super().__init__(
                session_service=InMemorySessionService(),
                app_name=app_name or DEFAULT_APP_NAME,
                agent=agent,
                plugins=plugins,
            )
