"""Base class for tools."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from agent.tool_context import ToolContext
    from llm.base_llm import FunctionDeclaration, LlmRequest


class BaseTool(ABC):
    """The base class for all tools.

    Attributes:
        name: Name the model calls the tool by
        description: Description shown to the model
        is_long_running: Whether the tool usually returns before its work is
            done. A long-running tool may return None, in which case no
            response is sent and the result arrives later as a function
            response correlated by call id.
    """

    def __init__(self, name: str, description: str, is_long_running: bool = False):
        self.name = name
        self.description = description
        self.is_long_running = is_long_running

    def get_declaration(self) -> FunctionDeclaration | None:
        """Return the declaration offered to the model.

        Tools without a declaration are not added to the request.
        """
        return None

    @abstractmethod
    async def run_async(self, *, args: dict[str, Any], tool_context: ToolContext) -> Any:
        """Run the tool with the model-provided arguments.

        Args:
            args: The arguments filled in by the model
            tool_context: Per-call context: state, actions, call id

        Returns:
            The tool response. Non-dict values are wrapped as {"result": value}.
        """

    async def process_llm_request(
        self, *, tool_context: ToolContext, llm_request: LlmRequest
    ) -> None:
        """Add this tool to an outgoing request.

        Override to preprocess the request in other ways.
        """
        declaration = self.get_declaration()
        if declaration is None:
            return
        llm_request.append_function_declaration(declaration, self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
