"""LLM transport contract.

The engine treats the model as a black box: an LlmRequest goes in, one or
more LlmResponse objects come out (several when streaming). Concrete
transports subclass BaseLlm.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncGenerator

from pydantic import BaseModel, ConfigDict, Field

from core.models import Content, WireModel


class FunctionDeclaration(WireModel):
    """A tool as the model sees it: name, description and JSON schema."""

    name: str
    description: str = ""
    parameters: dict[str, Any] | None = None


class LlmRequest(BaseModel):
    """Everything a model call needs.

    Attributes:
        model: Model name, informational for plugins and logging
        contents: Conversation history visible to the calling agent
        system_instruction: Joined system instructions
        function_declarations: Tools offered to the model
        tools_dict: Tool name -> tool instance, used to dispatch calls
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    model: str | None = None
    contents: list[Content] = Field(default_factory=list)
    system_instruction: str | None = None
    function_declarations: list[FunctionDeclaration] = Field(default_factory=list)
    tools_dict: dict[str, Any] = Field(default_factory=dict, exclude=True)

    def append_instructions(self, instructions: list[str]) -> None:
        """Append instructions, separated from existing ones by a blank line."""
        parts = [self.system_instruction] if self.system_instruction else []
        parts.extend(i for i in instructions if i)
        self.system_instruction = "\n\n".join(parts) if parts else None

    def append_function_declaration(self, declaration: FunctionDeclaration, tool: Any) -> None:
        self.function_declarations.append(declaration)
        self.tools_dict[declaration.name] = tool


class LlmResponse(BaseModel):
    """One (possibly partial) response from the model."""

    content: Content | None = None
    partial: bool | None = None
    turn_complete: bool | None = None
    error_code: str | None = None
    error_message: str | None = None
    usage: dict[str, int | None] | None = None


class BaseLlm(ABC):
    """Base class for model transports.

    Attributes:
        model: Model name
    """

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    def generate_content_async(
        self, llm_request: LlmRequest, stream: bool = False
    ) -> AsyncGenerator[LlmResponse, None]:
        """Send the request and yield responses.

        Without streaming exactly one response is yielded. With streaming,
        partial responses come first and the last one is complete.

        Raises:
            Exception: Any transport failure. The agent routes it to the
                on_model_error hooks.
        """
