"""Context handed to tools and tool callbacks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from core.models import EventActions, ToolConfirmation

from .callback_context import CallbackContext

if TYPE_CHECKING:
    from .invocation_context import InvocationContext


class ToolContext(CallbackContext):
    """Per-call view of the invocation.

    The accumulated ``actions`` become the EventActions of the function
    response event built for this call.

    Attributes:
        function_call_id: Id of the call being executed
        tool_confirmation: The client's answer when the call is replayed
            after a confirmation request, otherwise None
    """

    def __init__(
        self,
        invocation_context: InvocationContext,
        function_call_id: str | None = None,
        event_actions: EventActions | None = None,
        tool_confirmation: ToolConfirmation | None = None,
    ):
        super().__init__(invocation_context, event_actions=event_actions)
        self.function_call_id = function_call_id
        self.tool_confirmation = tool_confirmation

    def request_credential(self, auth_config: Any) -> None:
        """Ask the client for credentials for this call."""
        if not self.function_call_id:
            raise ValueError("function_call_id is not set.")
        self._event_actions.requested_auth_configs[self.function_call_id] = auth_config

    def request_confirmation(self, *, hint: str = "", payload: Any = None) -> None:
        """Ask the client to confirm this call before it runs."""
        if not self.function_call_id:
            raise ValueError("function_call_id is not set.")
        self._event_actions.requested_tool_confirmations[self.function_call_id] = (
            ToolConfirmation(hint=hint, payload=payload)
        )
