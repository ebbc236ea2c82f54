"""Event model."""

import time

from pydantic import ConfigDict, Field

from .content import Content, FunctionCall, FunctionResponse
from .event_actions import EventActions
from .utils import WireModel, gen_id


class Event(WireModel):
    """One immutable entry of a session's history.

    `author` is either "user" or the name of the agent that produced the
    event. `branch` is the dotted agent lineage that produced it, used to
    isolate sub-agent history.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: gen_id("evt_"))
    invocation_id: str = ""
    author: str
    branch: str | None = None
    timestamp: float = Field(default_factory=time.time)
    content: Content | None = None
    actions: EventActions = Field(default_factory=EventActions)
    long_running_tool_ids: set[str] | None = None
    partial: bool | None = None
    turn_complete: bool | None = None
    error_code: str | None = None
    error_message: str | None = None

    def get_function_calls(self) -> list[FunctionCall]:
        if not self.content:
            return []
        return [p.function_call for p in self.content.parts if p.function_call]

    def get_function_responses(self) -> list[FunctionResponse]:
        if not self.content:
            return []
        return [p.function_response for p in self.content.parts if p.function_response]

    def is_final_response(self) -> bool:
        """Whether this event ends the agent's turn.

        Events that ask for a long-running tool or skip summarization end the
        turn even though they carry function calls or responses.
        """
        if self.actions.skip_summarization or self.long_running_tool_ids:
            return True
        return (
            not self.get_function_calls()
            and not self.get_function_responses()
            and not self.partial
        )
