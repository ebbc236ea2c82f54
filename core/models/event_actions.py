"""EventActions model and merge rules."""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import Field

from .tool_confirmation import ToolConfirmation
from .utils import WireModel


class EventActions(WireModel):
    """Side effects declared by an event.

    Attributes:
        skip_summarization: If True, the model is not called to summarize a
            function response. Only used on function response events.
        state_delta: State changes, keyed by (possibly scope-prefixed) key.
        artifact_delta: Artifact changes, filename -> version.
        transfer_to_agent: Name of the agent control is handed to.
        escalate: The agent is escalating to a higher level agent.
        requested_auth_configs: Auth configs requested by tools, keyed by the
            function call id that asked for them.
        requested_tool_confirmations: Confirmations requested by tools, keyed
            by function call id.
    """

    skip_summarization: bool | None = None
    state_delta: dict[str, Any] = Field(default_factory=dict)
    artifact_delta: dict[str, int] = Field(default_factory=dict)
    transfer_to_agent: str | None = None
    escalate: bool | None = None
    requested_auth_configs: dict[str, Any] = Field(default_factory=dict)
    requested_tool_confirmations: dict[str, ToolConfirmation] = Field(
        default_factory=dict
    )


MERGED_MAPPING_FIELDS = (
    "state_delta",
    "artifact_delta",
    "requested_auth_configs",
    "requested_tool_confirmations",
)
LAST_WINS_FIELDS = ("skip_summarization", "transfer_to_agent", "escalate")


def create_event_actions(**partial: Any) -> EventActions:
    """Create EventActions, filling every mapping field with an empty container."""
    return EventActions(**partial)


def merge_event_actions(
    sources: Iterable[EventActions | Mapping[str, Any] | None],
    target: EventActions | None = None,
) -> EventActions:
    """Merge actions in order into a new EventActions.

    Mapping fields are unioned, with later duplicate keys overwriting earlier
    ones. Scalar fields take the last value that is not None. Neither the
    sources nor the target are modified.

    Args:
        sources: Actions to merge, as models or plain mappings
        target: Optional starting point for the merge

    Returns:
        The merged actions
    """
    result = target.model_copy(deep=True) if target is not None else EventActions()

    for source in sources:
        if source is None:
            continue
        if isinstance(source, Mapping):
            source = EventActions.model_validate(source)

        for name in MERGED_MAPPING_FIELDS:
            getattr(result, name).update(getattr(source, name))
        for name in LAST_WINS_FIELDS:
            value = getattr(source, name)
            if value is not None:
                setattr(result, name, value)

    return result
