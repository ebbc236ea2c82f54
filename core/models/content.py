"""Content and part models exchanged with the model and tools."""

from typing import Any

from pydantic import Field

from .utils import WireModel


class FunctionCall(WireModel):
    id: str | None = None
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class FunctionResponse(WireModel):
    id: str | None = None
    name: str
    response: dict[str, Any] = Field(default_factory=dict)


class Part(WireModel):
    text: str | None = None
    function_call: FunctionCall | None = None
    function_response: FunctionResponse | None = None

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)

    @classmethod
    def from_function_call(
        cls, name: str, args: dict[str, Any] | None = None, id: str | None = None
    ) -> "Part":
        return cls(function_call=FunctionCall(id=id, name=name, args=args or {}))

    @classmethod
    def from_function_response(
        cls, name: str, response: dict[str, Any], id: str | None = None
    ) -> "Part":
        return cls(
            function_response=FunctionResponse(id=id, name=name, response=response)
        )


class Content(WireModel):
    role: str | None = None
    parts: list[Part] = Field(default_factory=list)

    @classmethod
    def from_text(cls, text: str, role: str = "user") -> "Content":
        return cls(role=role, parts=[Part.from_text(text)])

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(part.text for part in self.parts if part.text)
