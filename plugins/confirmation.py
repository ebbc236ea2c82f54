"""Tool confirmation plugin.

Applies a PermissionsConfig to every tool call:

- allow: the tool runs normally
- deny: the tool is skipped and the model receives an error response
- ask: the first call requests a confirmation from the client and is skipped;
  when the client answers, the call is replayed with the answer attached to
  the tool context and runs only if it was confirmed
"""

import logging
from typing import Any

from config.permissions_config import Level, PermissionsConfig

from .base_plugin import BasePlugin

logger = logging.getLogger(__name__)


class ToolConfirmationPlugin(BasePlugin):
    """Gates tool calls on a permission policy.

    Attributes:
        permissions: The policy, matched on the tool name
    """

    def __init__(
        self,
        permissions: PermissionsConfig | None = None,
        name: str = "tool_confirmation",
    ):
        super().__init__(name)
        self.permissions = permissions or PermissionsConfig()

    async def before_tool(
        self, *, tool, tool_args: dict[str, Any], tool_context
    ) -> dict[str, Any] | None:
        level = self.permissions.level_for(tool.name)

        if level == Level.ALLOW:
            return None

        if level == Level.DENY:
            logger.warning("Tool call to %s denied by policy", tool.name)
            return {"error": f"Tool call to '{tool.name}' is not allowed."}

        confirmation = tool_context.tool_confirmation
        if confirmation is None:
            logger.debug(
                "Requesting confirmation for %s (%s)",
                tool.name,
                tool_context.function_call_id,
            )
            tool_context.request_confirmation(
                hint=f"Please approve or reject the call to '{tool.name}'.",
                payload=dict(tool_args),
            )
            return {
                "error": "This tool call requires confirmation, please approve or reject."
            }

        if not confirmation.confirmed:
            logger.info("Tool call to %s rejected by the user", tool.name)
            return {"error": "This tool call is rejected."}

        return None
