"""Invocation context threaded through agent execution."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from config.run_config import RunConfig
from core.exceptions import LlmCallsLimitExceededError
from core.logging_config import get_invocation_logger
from core.models import Content, Session
from core.sessions import BaseSessionService
from plugins.manager import PluginManager

if TYPE_CHECKING:
    from .base_agent import BaseAgent


class LlmCallCounter:
    """Counts model calls across every context derived from one invocation."""

    def __init__(self) -> None:
        self.number_of_llm_calls = 0

    def increment_and_enforce(self, run_config: RunConfig) -> None:
        self.number_of_llm_calls += 1
        limit = run_config.max_llm_calls
        if limit > 0 and self.number_of_llm_calls > limit:
            raise LlmCallsLimitExceededError(limit)


@dataclass
class InvocationContext:
    """Request-scoped state for one turn.

    One context is created per turn by the runner. Agents derive their own
    context with create_child_context, which points at the agent and extends
    the branch but shares the call counter and cancellation token.

    Attributes:
        invocation_id: Id shared by every event of the turn
        session: The caller's copy of the session; appended events land here
        agent: The agent this context belongs to
        plugin_manager: Application-wide plugins
        session_service: Store events are persisted to
        run_config: Options for this turn
        branch: Dotted agent lineage below the root, None for the root
        user_content: The (possibly plugin-replaced) incoming message
        end_invocation: Set to stop the current agent early
        cancellation: Optional caller token; once set the turn stops
        logger: Logger stamped with the invocation identifiers
    """

    invocation_id: str
    session: Session
    agent: BaseAgent
    plugin_manager: PluginManager
    session_service: BaseSessionService
    run_config: RunConfig = field(default_factory=RunConfig)
    branch: str | None = None
    user_content: Content | None = None
    end_invocation: bool = False
    cancellation: asyncio.Event | None = None
    logger: logging.LoggerAdapter | None = None
    llm_call_counter: LlmCallCounter = field(default_factory=LlmCallCounter, repr=False)

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = get_invocation_logger(
                invocation_id=self.invocation_id,
                session_id=self.session.id,
                agent=self.agent.name,
                branch=self.branch,
            )

    @property
    def app_name(self) -> str:
        return self.session.app_name

    @property
    def user_id(self) -> str:
        return self.session.user_id

    def create_child_context(self, agent: BaseAgent) -> InvocationContext:
        """Derive the context an agent runs in. The parent is not modified."""
        return dataclasses.replace(
            self,
            agent=agent,
            branch=agent.branch_path,
            end_invocation=False,
            logger=None,
        )

    def increment_llm_call_count(self) -> None:
        """Count one model call.

        Raises:
            LlmCallsLimitExceededError: If run_config.max_llm_calls is exceeded
        """
        self.llm_call_counter.increment_and_enforce(self.run_config)

    def is_cancelled(self) -> bool:
        return self.cancellation is not None and self.cancellation.is_set()
