"""App: the top-level container of an agent system."""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agent.base_agent import BaseAgent
from config.defaults import BUILTIN_PLUGIN_NAMES
from config.loader import get_config
from config.main_config import Config
from config.run_config import RunConfig
from core.exceptions import ConfigurationError
from plugins.base_plugin import BasePlugin
from plugins.confirmation import ToolConfirmationPlugin
from plugins.logging_plugin import LoggingPlugin

logger = logging.getLogger(__name__)


class App(BaseModel):
    """An agent tree plus the application-wide plugins around it.

    Attributes:
        name: Application name; sessions are stored under it
        root_agent: Root of the agent tree
        plugins: Plugins in execution order
        run_config: Default run options, used when a turn passes none
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    root_agent: BaseAgent
    plugins: list[BasePlugin] = Field(default_factory=list)
    run_config: RunConfig = Field(default_factory=RunConfig)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(
                f"Invalid app name: {value!r}. App names must be valid identifiers."
            )
        return value

    @classmethod
    def from_config(
        cls,
        config: Config | None,
        root_agent: BaseAgent,
        plugins: list[BasePlugin] | None = None,
    ) -> App:
        """Build an app from a Config, or from get_config() when None.

        Built-in plugins named in config.plugins are registered first, in
        the order given, followed by the extra plugins.

        Raises:
            ConfigurationError: If config.plugins names an unknown plugin
        """
        if config is None:
            config = get_config()

        builtin: list[BasePlugin] = []
        for plugin_name in config.plugins:
            if plugin_name not in BUILTIN_PLUGIN_NAMES:
                raise ConfigurationError(f"Unknown built-in plugin: {plugin_name}")
            if plugin_name == "logging":
                builtin.append(LoggingPlugin())
            else:
                builtin.append(ToolConfirmationPlugin(config.permissions))

        logger.debug("Built-in plugins from config: %s", config.plugins)
        return cls(
            name=config.app_name,
            root_agent=root_agent,
            plugins=builtin + list(plugins or []),
            run_config=config.run,
        )
