"""RunConfig model."""

import logging
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from .defaults import DEFAULT_MAX_LLM_CALLS

logger = logging.getLogger(__name__)


class StreamingMode(str, Enum):
    """How model output is delivered to the caller."""

    NONE = "none"
    SSE = "sse"  # incremental partial events, followed by the complete event


class RunConfig(BaseModel):
    """Per-invocation options recognized by the runner."""

    streaming_mode: StreamingMode = Field(
        default=StreamingMode.NONE,
        description="Streaming mode for model responses",
    )
    max_llm_calls: int = Field(
        default=DEFAULT_MAX_LLM_CALLS,
        description="Limit on model calls per invocation; 0 or less disables the limit",
    )

    @field_validator("max_llm_calls")
    @classmethod
    def _warn_unbounded(cls, value: int) -> int:
        if value <= 0:
            logger.warning(
                "max_llm_calls is %d, model calls per invocation are unbounded", value
            )
        return value
