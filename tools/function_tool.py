"""Tools that wrap plain Python functions.

The parameter schema is derived from the function signature with pydantic,
and the description from its docstring. A parameter named ``tool_context``
receives the ToolContext and is hidden from the model.
"""

from __future__ import annotations

import inspect
import logging
import typing
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, create_model

from core.utils import call_maybe_async
from llm.base_llm import FunctionDeclaration

from .base_tool import BaseTool

if TYPE_CHECKING:
    from agent.tool_context import ToolContext

logger = logging.getLogger(__name__)

TOOL_CONTEXT_PARAM = "tool_context"


class FunctionTool(BaseTool):
    """A tool that calls a sync or async function.

    Attributes:
        func: The wrapped function
    """

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        name: str | None = None,
        description: str | None = None,
        is_long_running: bool = False,
    ):
        super().__init__(
            name=name or func.__name__,
            description=description if description is not None else inspect.getdoc(func) or "",
            is_long_running=is_long_running,
        )
        self.func = func
        self._signature = inspect.signature(func)
        self._args_model = _build_args_model(self.name, func, self._signature)

    def get_declaration(self) -> FunctionDeclaration:
        schema = self._args_model.model_json_schema()
        schema.pop("title", None)
        return FunctionDeclaration(
            name=self.name, description=self.description, parameters=schema
        )

    async def run_async(self, *, args: dict[str, Any], tool_context: ToolContext) -> Any:
        params = self._signature.parameters
        accepts_any = any(p.kind == p.VAR_KEYWORD for p in params.values())
        call_args = {
            k: v
            for k, v in args.items()
            if (k in params or accepts_any) and k != TOOL_CONTEXT_PARAM
        }

        missing = [
            param_name
            for param_name, param in params.items()
            if param.default is inspect.Parameter.empty
            and param.kind not in (param.VAR_POSITIONAL, param.VAR_KEYWORD)
            and param_name != TOOL_CONTEXT_PARAM
            and param_name not in call_args
        ]
        if missing:
            return {
                "error": (
                    f"Invoking `{self.name}()` failed as the following mandatory "
                    f"input parameters are not present:\n{', '.join(missing)}\n"
                    "You could retry calling this tool, but it is IMPORTANT for "
                    "you to provide all the mandatory parameters."
                )
            }

        validated = self._args_model.model_validate(
            {k: v for k, v in call_args.items() if k in self._args_model.model_fields}
        )
        for field_name in self._args_model.model_fields:
            if field_name in call_args:
                call_args[field_name] = getattr(validated, field_name)

        if TOOL_CONTEXT_PARAM in params:
            call_args[TOOL_CONTEXT_PARAM] = tool_context
        return await call_maybe_async(self.func, **call_args)


def _build_args_model(
    name: str, func: Callable[..., Any], signature: inspect.Signature
) -> type[BaseModel]:
    try:
        hints = typing.get_type_hints(func)
    except (NameError, TypeError):
        logger.debug("Could not resolve type hints of %s, using raw annotations", name)
        hints = {}

    fields: dict[str, Any] = {}
    for param_name, param in signature.parameters.items():
        if param_name == TOOL_CONTEXT_PARAM:
            continue
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation = hints.get(param_name, param.annotation)
        if annotation is inspect.Parameter.empty or isinstance(annotation, str):
            annotation = Any
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[param_name] = (annotation, default)

    return create_model(f"{name}_args", **fields)
