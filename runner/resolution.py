"""Decides which agent continues a session.

Resolution order:
1. A function response in the new message resumes the agent that made the
   matching call, wherever that call sits in the history.
2. Otherwise the most recent agent-authored event decides, provided the
   agent is the root or can transfer control back up the tree. Authors that
   are not in the tree and non-transferable agents are skipped.
3. Otherwise the root agent runs.
"""

from __future__ import annotations

import logging

from agent.base_agent import BaseAgent
from agent.functions import find_matching_function_call
from core.constants import USER_AUTHOR
from core.models import Content, Event

logger = logging.getLogger(__name__)


def find_agent_to_run(
    events: list[Event], new_message: Content | None, root_agent: BaseAgent
) -> BaseAgent:
    """Pick the agent that handles the new message.

    Args:
        events: Session history, oldest first
        new_message: The incoming message
        root_agent: Root of the live agent tree

    Returns:
        The agent to run
    """
    agent = _find_agent_by_function_response(events, new_message, root_agent)
    if agent is not None:
        return agent

    for event in reversed(events):
        if event.author == USER_AUTHOR:
            continue
        if event.author == root_agent.name:
            return root_agent

        agent = root_agent.find_sub_agent(event.author)
        if agent is None:
            logger.warning(
                "Event from an unknown agent: %s, event id: %s", event.author, event.id
            )
            continue
        if is_transferable_across_agent_tree(agent, root_agent):
            return agent
        logger.debug("Skipping non-transferable agent %s", agent.name)

    return root_agent


def is_transferable_across_agent_tree(agent: BaseAgent, root_agent: BaseAgent) -> bool:
    """Whether control may flow from the agent back up to the root.

    False if the agent or any ancestor below the root disallows transfer to
    its parent.
    """
    current: BaseAgent | None = agent
    while current is not None and current is not root_agent:
        if current.disallow_transfer_to_parent:
            return False
        current = current.parent_agent
    return True


def _find_agent_by_function_response(
    events: list[Event], new_message: Content | None, root_agent: BaseAgent
) -> BaseAgent | None:
    if new_message is None:
        return None
    for part in new_message.parts:
        response = part.function_response
        if response is None or not response.id:
            continue
        match = find_matching_function_call(events, response.id)
        if match is None:
            continue
        call_event, _ = match
        agent = root_agent.find_agent(call_event.author)
        if agent is not None:
            return agent
        logger.warning(
            "Function call %s was made by an unknown agent: %s",
            response.id,
            call_event.author,
        )
    return None
