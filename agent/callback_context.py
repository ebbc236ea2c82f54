"""Context handed to agent and model callbacks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.models import Content, EventActions, Session
from core.state import State

if TYPE_CHECKING:
    from .invocation_context import InvocationContext


class CallbackContext:
    """A view of the invocation for callbacks.

    State written through ``state`` is applied to the session copy right
    away and recorded in ``actions.state_delta``, so that it is persisted
    with the next event the agent emits.
    """

    def __init__(
        self,
        invocation_context: InvocationContext,
        event_actions: EventActions | None = None,
    ):
        self._invocation_context = invocation_context
        self._event_actions = event_actions or EventActions()
        self._state = State(
            value=invocation_context.session.state,
            delta=self._event_actions.state_delta,
        )

    @property
    def invocation_context(self) -> InvocationContext:
        return self._invocation_context

    @property
    def invocation_id(self) -> str:
        return self._invocation_context.invocation_id

    @property
    def agent_name(self) -> str:
        return self._invocation_context.agent.name

    @property
    def session(self) -> Session:
        return self._invocation_context.session

    @property
    def user_content(self) -> Content | None:
        return self._invocation_context.user_content

    @property
    def state(self) -> State:
        return self._state

    @property
    def actions(self) -> EventActions:
        return self._event_actions

    @property
    def logger(self) -> logging.LoggerAdapter:
        return self._invocation_context.logger
