"""Plugins assembled from plain hook functions.

Lets callers register hooks without subclassing BasePlugin, either from an
explicit mapping, from functions marked with the decorators in
plugins.decorators, or from every decorated function in a module.
"""

from __future__ import annotations

import inspect
import logging
from types import ModuleType
from typing import Any, Callable

from core.exceptions import ConfigurationError

from .base_plugin import HOOK_NAMES, BasePlugin

logger = logging.getLogger(__name__)


class FunctionPlugin(BasePlugin):
    """A plugin whose hooks are standalone functions.

    Attributes:
        name: Plugin name
        hooks: Dict mapping hook names to handler functions
    """

    def __init__(self, name: str, hooks: dict[str, Callable[..., Any]] | None = None):
        """Initialize the plugin.

        Args:
            name: Plugin name
            hooks: Hook name -> handler. Handlers take keyword arguments only.

        Raises:
            ConfigurationError: If a hook name is not a known hook
        """
        super().__init__(name)
        self.hooks = dict(hooks or {})
        unknown = sorted(set(self.hooks) - set(HOOK_NAMES))
        if unknown:
            raise ConfigurationError(
                f"Plugin {name}: unknown hook(s) {', '.join(unknown)}"
            )
        for hook_name, handler in self.hooks.items():
            setattr(self, hook_name, handler)

    @classmethod
    def from_functions(cls, name: str, *functions: Callable[..., Any]) -> FunctionPlugin:
        """Build a plugin from decorated hook functions.

        Args:
            name: Plugin name
            *functions: Functions marked with a hook decorator

        Returns:
            FunctionPlugin with one hook per function

        Raises:
            ConfigurationError: If a function carries no hook marker
        """
        hooks: dict[str, Callable[..., Any]] = {}
        for fn in functions:
            hook_name = getattr(fn, "_hook_name", None)
            if hook_name is None:
                raise ConfigurationError(
                    f"Plugin {name}: {getattr(fn, '__name__', fn)!r} is not a hook"
                )
            if hook_name in hooks:
                logger.warning(
                    "Plugin %s: Duplicate hook %s, using %s",
                    name,
                    hook_name,
                    getattr(fn, "__name__", fn),
                )
            hooks[hook_name] = fn
        return cls(name, hooks)

    @classmethod
    def from_module(cls, module: ModuleType, name: str | None = None) -> FunctionPlugin:
        """Collect every decorated hook function defined in a module.

        The plugin name comes from, in order: the name argument, the
        module's ``__plugin__["name"]`` entry, the module name.
        """
        metadata = getattr(module, "__plugin__", {})
        plugin_name = name or metadata.get("name") or module.__name__.rsplit(".", 1)[-1]

        hooks: dict[str, Callable[..., Any]] = {}
        for attr_name, obj in inspect.getmembers(module):
            if callable(obj) and hasattr(obj, "_hook_name"):
                hook_name = obj._hook_name
                if hook_name in hooks:
                    logger.warning(
                        "Plugin %s: Duplicate hook %s, using %s",
                        plugin_name,
                        hook_name,
                        attr_name,
                    )
                hooks[hook_name] = obj

        logger.debug("Loaded plugin '%s' with hooks: %s", plugin_name, list(hooks))
        return cls(plugin_name, hooks)
