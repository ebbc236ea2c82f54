"""
Core package of the invocation engine.

Contains the event and state model, the session service contract with an
in-memory store, domain exceptions and logging setup. Agents, plugins and the
runner are built on top of these.
"""

from .exceptions import (
    AlreadyExistsError,
    ConfigurationError,
    CoreError,
    LlmCallsLimitExceededError,
    NotFoundError,
    PluginExecutionError,
    SessionNotFoundError,
    ToolExecutionError,
)
from .models import (
    Content,
    Event,
    EventActions,
    FunctionCall,
    FunctionResponse,
    Part,
    Session,
    ToolConfirmation,
    create_event_actions,
    gen_id,
    merge_event_actions,
    new_invocation_id,
)
from .sessions import (
    BaseSessionService,
    GetSessionConfig,
    InMemorySessionService,
    ListSessionsResponse,
)
from .state import State

__all__ = [
    # Exceptions
    "CoreError",
    "ConfigurationError",
    "NotFoundError",
    "SessionNotFoundError",
    "AlreadyExistsError",
    "PluginExecutionError",
    "ToolExecutionError",
    "LlmCallsLimitExceededError",
    # Models
    "Content",
    "Part",
    "FunctionCall",
    "FunctionResponse",
    "Event",
    "EventActions",
    "ToolConfirmation",
    "Session",
    "State",
    "create_event_actions",
    "merge_event_actions",
    "gen_id",
    "new_invocation_id",
    # Sessions
    "BaseSessionService",
    "InMemorySessionService",
    "GetSessionConfig",
    "ListSessionsResponse",
]
