"""Builds the conversation history an agent sends to the model."""

from __future__ import annotations

import json

from core.constants import (
    REQUEST_CONFIRMATION_FUNCTION_CALL_NAME,
    REQUEST_CREDENTIAL_FUNCTION_CALL_NAME,
    USER_AUTHOR,
    USER_ROLE,
)
from core.models import Content, Event, Part

from .functions import remove_client_function_call_id


CLIENT_REQUEST_NAMES = frozenset(
    {REQUEST_CREDENTIAL_FUNCTION_CALL_NAME, REQUEST_CONFIRMATION_FUNCTION_CALL_NAME}
)


def is_event_in_branch(branch: str | None, event: Event) -> bool:
    """Whether an event is visible from the given branch.

    Events without a branch are visible everywhere and a context without a
    branch sees everything. Otherwise an event is visible on its own branch
    and on branches below it.
    """
    if not branch or not event.branch:
        return True
    return branch == event.branch or branch.startswith(f"{event.branch}.")


def build_contents(events: list[Event], agent_name: str, branch: str | None) -> list[Content]:
    """Build request contents from session events.

    Events from other branches are dropped, as are requests to the client
    (credentials, confirmations) and the client's answers to them. When a
    function call was answered more than once, only the latest answer is
    kept. Messages of other agents are presented as user-side context.
    """
    latest_response_index = _latest_function_response_index(events)

    contents = []
    for index, event in enumerate(events):
        if event.content is None or not event.content.parts:
            continue
        if event.partial:
            continue
        if not is_event_in_branch(branch, event):
            continue

        parts = []
        for part in event.content.parts:
            if part.function_call and part.function_call.name in CLIENT_REQUEST_NAMES:
                continue
            if part.function_response:
                if part.function_response.name in CLIENT_REQUEST_NAMES:
                    continue
                response_id = part.function_response.id
                if response_id and latest_response_index.get(response_id, index) != index:
                    continue
            parts.append(part)
        if not parts:
            continue

        if event.author in (USER_AUTHOR, agent_name):
            content = Content(role=event.content.role, parts=parts).model_copy(deep=True)
        else:
            content = _present_other_agent_message(event.author, parts)
        remove_client_function_call_id(content)
        contents.append(content)
    return contents


def _latest_function_response_index(events: list[Event]) -> dict[str, int]:
    latest: dict[str, int] = {}
    for index, event in enumerate(events):
        for response in event.get_function_responses():
            if response.id:
                latest[response.id] = index
    return latest


def _present_other_agent_message(author: str, parts: list[Part]) -> Content:
    """Rewrite another agent's message as user-side context."""
    new_parts = [Part.from_text("For context:")]
    for part in parts:
        if part.text:
            new_parts.append(Part.from_text(f"[{author}] said: {part.text}"))
        elif part.function_call:
            new_parts.append(
                Part.from_text(
                    f"[{author}] called tool `{part.function_call.name}` with "
                    f"parameters: {json.dumps(part.function_call.args, default=str)}"
                )
            )
        elif part.function_response:
            new_parts.append(
                Part.from_text(
                    f"[{author}] `{part.function_response.name}` tool returned "
                    f"result: {json.dumps(part.function_response.response, default=str)}"
                )
            )
    return Content(role=USER_ROLE, parts=new_parts)
