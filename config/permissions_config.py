"""PermissionsConfig model for tool call confirmation."""

from enum import Enum
from fnmatch import fnmatch

from pydantic import BaseModel, Field


class Level(str, Enum):
    """Permission level for a tool call."""

    ASK = "ask"
    ALLOW = "allow"
    DENY = "deny"


class PermissionsConfig(BaseModel):
    """Tool call permissions, matched by tool name."""

    default: Level = Field(
        default=Level.ALLOW,
        description="Level for tools that match no pattern",
    )
    tools: dict[str, Level] = Field(
        default_factory=dict,
        description="Tool name or glob pattern -> level",
    )

    def level_for(self, tool_name: str) -> Level:
        """Resolve the level for a tool name.

        An exact name match wins over glob patterns; patterns are tried in
        insertion order.
        """
        if tool_name in self.tools:
            return self.tools[tool_name]
        for pattern, level in self.tools.items():
            if fnmatch(tool_name, pattern):
                return level
        return self.default
