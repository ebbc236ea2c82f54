"""Main Config model."""

from pydantic import BaseModel, Field

from .defaults import DEFAULT_APP_NAME
from .permissions_config import PermissionsConfig
from .run_config import RunConfig


class Config(BaseModel):
    """Main configuration model."""

    app_name: str = Field(
        default=DEFAULT_APP_NAME,
        description="Application name sessions are stored under",
    )
    log_level: str | None = Field(
        default=None,
        description="Log level override (falls back to the LOG_LEVEL env var)",
    )
    run: RunConfig = Field(
        default_factory=RunConfig,
        description="Default run options for every invocation",
    )
    plugins: list[str] = Field(
        default_factory=list,
        description="Built-in plugins to enable, in registration order",
    )
    permissions: PermissionsConfig = Field(
        default_factory=PermissionsConfig,
        description="Tool confirmation policy used by the tool_confirmation plugin",
    )
