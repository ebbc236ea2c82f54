"""
Session service contract and in-memory implementation.

The engine only ever reads sessions and appends events to them. Appending an
event folds its state delta into the store according to the key's scope:
`app:` and `user:` keys go to shared storage and are overlaid onto every
session read, all other keys stay with the session itself.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from .constants import APP_PREFIX, USER_PREFIX
from .exceptions import AlreadyExistsError
from .models import Event, Session, gen_id
from .state import split_scope

logger = logging.getLogger(__name__)


# =============================================================================
# Contract
# =============================================================================


class GetSessionConfig(BaseModel):
    """Restricts which events get_session returns."""

    num_recent_events: int | None = Field(
        default=None,
        description="Only return the N most recent events",
    )
    after_timestamp: float | None = Field(
        default=None,
        description="Only return events at or after this timestamp",
    )


class ListSessionsResponse(BaseModel):
    sessions: list[Session] = Field(default_factory=list)


class BaseSessionService(ABC):
    """Interface every session store implements."""

    @abstractmethod
    async def create_session(
        self,
        app_name: str,
        user_id: str,
        state: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Session:
        """Create a new session, optionally with initial state and a fixed id."""

    @abstractmethod
    async def get_session(
        self,
        app_name: str,
        user_id: str,
        session_id: str,
        config: GetSessionConfig | None = None,
    ) -> Session | None:
        """Return the session, or None when it does not exist."""

    @abstractmethod
    async def list_sessions(self, app_name: str, user_id: str) -> ListSessionsResponse:
        """List a user's sessions without their events."""

    @abstractmethod
    async def delete_session(self, app_name: str, user_id: str, session_id: str) -> None:
        """Delete a session. Deleting a missing session is a no-op."""

    async def append_event(self, session: Session, event: Event) -> Event:
        """Append an event to the given session object.

        Partial (streaming) events are never persisted. Subclasses must call
        this and then persist the event in their own storage.

        Args:
            session: The session the caller holds
            event: The event to append

        Returns:
            The appended event
        """
        if event.partial:
            return event
        self._update_session_state(session, event)
        session.events.append(event)
        session.last_update_time = event.timestamp
        return event

    def _update_session_state(self, session: Session, event: Event) -> None:
        if not event.actions.state_delta:
            return
        session.state.update(event.actions.state_delta)


# =============================================================================
# In-memory implementation
# =============================================================================


class InMemorySessionService(BaseSessionService):
    """Session store that keeps everything in process memory.

    Sessions handed out are deep copies with app and user state overlaid, so
    callers never alias the stored records.
    """

    def __init__(self) -> None:
        # app_name -> user_id -> session_id -> Session
        self._sessions: dict[str, dict[str, dict[str, Session]]] = {}
        # app_name -> user_id -> key -> value
        self._user_state: dict[str, dict[str, dict[str, Any]]] = {}
        # app_name -> key -> value
        self._app_state: dict[str, dict[str, Any]] = {}

    async def create_session(
        self,
        app_name: str,
        user_id: str,
        state: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Session:
        session_id = session_id.strip() if session_id and session_id.strip() else None
        if session_id and self._get_stored(app_name, user_id, session_id):
            raise AlreadyExistsError("Session", session_id)

        session = Session(
            id=session_id or gen_id("ses_"),
            app_name=app_name,
            user_id=user_id,
            last_update_time=time.time(),
        )
        self._fold_state(session, state or {})
        self._sessions.setdefault(app_name, {}).setdefault(user_id, {})[session.id] = session

        logger.info("Session created: %s", session.id)
        return self._merge_state(app_name, user_id, session.model_copy(deep=True))

    async def get_session(
        self,
        app_name: str,
        user_id: str,
        session_id: str,
        config: GetSessionConfig | None = None,
    ) -> Session | None:
        stored = self._get_stored(app_name, user_id, session_id)
        if stored is None:
            return None

        session = stored.model_copy(deep=True)
        if config:
            if config.num_recent_events is not None:
                n = config.num_recent_events
                session.events = session.events[-n:] if n > 0 else []
            if config.after_timestamp is not None:
                session.events = [
                    e for e in session.events if e.timestamp >= config.after_timestamp
                ]
        return self._merge_state(app_name, user_id, session)

    async def list_sessions(self, app_name: str, user_id: str) -> ListSessionsResponse:
        stored = self._sessions.get(app_name, {}).get(user_id, {})
        sessions = []
        for session in stored.values():
            copy = session.model_copy(update={"events": []}, deep=True)
            sessions.append(self._merge_state(app_name, user_id, copy))
        return ListSessionsResponse(sessions=sessions)

    async def delete_session(self, app_name: str, user_id: str, session_id: str) -> None:
        if self._get_stored(app_name, user_id, session_id) is None:
            return
        logger.info("Deleting session: %s", session_id)
        del self._sessions[app_name][user_id][session_id]

    async def append_event(self, session: Session, event: Event) -> Event:
        await super().append_event(session, event)
        if event.partial:
            return event

        stored = self._get_stored(session.app_name, session.user_id, session.id)
        if stored is None:
            logger.warning(
                "Failed to append event to session %s: session not found", session.id
            )
            return event

        self._fold_state(stored, event.actions.state_delta)
        stored.events.append(event)
        stored.last_update_time = event.timestamp
        return event

    def _get_stored(self, app_name: str, user_id: str, session_id: str) -> Session | None:
        return self._sessions.get(app_name, {}).get(user_id, {}).get(session_id)

    def _fold_state(self, stored: Session, delta: dict[str, Any]) -> None:
        """Route each key of a state delta to the storage its scope owns."""
        for key, value in delta.items():
            prefix, bare_key = split_scope(key)
            if prefix == APP_PREFIX:
                self._app_state.setdefault(stored.app_name, {})[bare_key] = value
            elif prefix == USER_PREFIX:
                self._user_state.setdefault(stored.app_name, {}).setdefault(
                    stored.user_id, {}
                )[bare_key] = value
            else:
                stored.state[key] = value

    def _merge_state(self, app_name: str, user_id: str, session: Session) -> Session:
        for key, value in self._app_state.get(app_name, {}).items():
            session.state[APP_PREFIX + key] = value
        for key, value in self._user_state.get(app_name, {}).get(user_id, {}).items():
            session.state[USER_PREFIX + key] = value
        return session
