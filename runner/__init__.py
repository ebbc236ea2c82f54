"""
Runner package.

The runner drives one turn: it applies the plugin protocol around the turn,
resolves which agent continues the session, runs it and persists every event
before handing it to the caller.
"""

from .app import App
from .in_memory_runner import InMemoryRunner
from .resolution import find_agent_to_run, is_transferable_across_agent_tree
from .runner import Runner

__all__ = [
    "App",
    "Runner",
    "InMemoryRunner",
    "find_agent_to_run",
    "is_transferable_across_agent_tree",
]
