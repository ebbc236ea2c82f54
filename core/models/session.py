"""Session model."""

from typing import Any

from pydantic import Field

from .event import Event
from .utils import WireModel


class Session(WireModel):
    id: str
    app_name: str
    user_id: str
    state: dict[str, Any] = Field(default_factory=dict)
    events: list[Event] = Field(default_factory=list)
    last_update_time: float = Field(
        default=0.0,
        description="Timestamp of the most recently appended event",
    )
