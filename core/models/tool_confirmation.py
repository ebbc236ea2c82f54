"""ToolConfirmation model."""

from typing import Any

from .utils import WireModel


class ToolConfirmation(WireModel):
    hint: str = ""
    confirmed: bool = False
    payload: Any | None = None
