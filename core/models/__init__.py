"""
Domain models for the invocation engine.

These are the core data structures used throughout the application.
"""

from .content import Content, FunctionCall, FunctionResponse, Part
from .event import Event
from .event_actions import EventActions, create_event_actions, merge_event_actions
from .session import Session
from .tool_confirmation import ToolConfirmation
from .utils import WireModel, gen_id, new_invocation_id

__all__ = [
    # Utils
    "gen_id",
    "new_invocation_id",
    "WireModel",
    # Content models
    "Content",
    "Part",
    "FunctionCall",
    "FunctionResponse",
    # Event models
    "Event",
    "EventActions",
    "ToolConfirmation",
    "create_event_actions",
    "merge_event_actions",
    # Session models
    "Session",
]
