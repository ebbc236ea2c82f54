"""Function tools for operations that finish out of band."""

from __future__ import annotations

from typing import Any, Callable

from llm.base_llm import FunctionDeclaration

from .function_tool import FunctionTool

LONG_RUNNING_NOTE = (
    "NOTE: This is a long-running operation. Do not call this tool again if "
    "it has already returned some intermediate or pending status."
)


class LongRunningFunctionTool(FunctionTool):
    """A function tool that returns early and completes later.

    The function typically starts the work and returns a ticket, or None.
    When it returns None no function response is produced for the call;
    the client sends one later, correlated by the function call id, and the
    agent that made the call resumes.
    """

    def __init__(self, func: Callable[..., Any], **kwargs: Any):
        super().__init__(func, is_long_running=True, **kwargs)

    def get_declaration(self) -> FunctionDeclaration:
        declaration = super().get_declaration()
        if declaration.description:
            declaration.description = f"{declaration.description}\n\n{LONG_RUNNING_NOTE}"
        else:
            declaration.description = LONG_RUNNING_NOTE
        return declaration
