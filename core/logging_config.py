"""Centralized logging configuration for the invocation engine.

Two output styles are supported: a plain text format for terminals and a
single-line JSON format (StructuredFormatter) for log ingestion. Invocation
scoped loggers carry the invocation, session, agent and branch identifiers as
`extra` fields so the JSON output can be filtered per turn.
"""

import json
import logging
import os
import sys
import time
import traceback
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Generator, MutableMapping, Optional

# Log format constants
SIMPLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
)

# Environment variable names
LOG_LEVEL_ENV = "LOG_LEVEL"
LOG_FORMAT_ENV = "LOG_FORMAT"

# Default values
DEFAULT_LOG_LEVEL = "INFO"

INVOCATION_LOGGER_NAME = "invocation"

# Attributes every LogRecord has; anything else came in through `extra`
_RECORD_FIELDS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
}


class StructuredFormatter(logging.Formatter):
    """Formats each record as one JSON object.

    Fields: timestamp, level, logger, message, plus `context` with every
    non-None value passed through `extra`, and `error`/`stack` for records
    carrying exception info.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_FIELDS and value is not None
        }
        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["error"] = str(record.exc_info[1])
            log_entry["stack"] = record.exc_text or "".join(
                traceback.format_exception(*record.exc_info)
            )

        return json.dumps(log_entry, default=str)


def setup_logging(level: Optional[str] = None, structured: Optional[bool] = None) -> None:
    """Configure logging for the entire application.

    Args:
        level: Log level override. If not provided, uses LOG_LEVEL env var or INFO.
        structured: Emit JSON lines. If not provided, enabled when the
            LOG_FORMAT env var is "json".
    """
    level_name = (level or os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    if structured is None:
        structured = os.environ.get(LOG_FORMAT_ENV, "").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        # Detailed format with line numbers for DEBUG
        fmt = DETAILED_FORMAT if log_level == logging.DEBUG else SIMPLE_FORMAT
        handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))

    logging.basicConfig(level=log_level, handlers=[handler], force=True)


class InvocationLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that stamps records with invocation identifiers."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs


def get_invocation_logger(
    base: logging.Logger | None = None, **fields: Any
) -> InvocationLoggerAdapter:
    """Create a logger for one invocation.

    Args:
        base: Logger to wrap. Defaults to the "invocation" logger.
        **fields: Identifiers attached to every record (invocation_id, ...)
    """
    return InvocationLoggerAdapter(
        base or logging.getLogger(INVOCATION_LOGGER_NAME), fields
    )


@contextmanager
def log_timing(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.DEBUG,
) -> Generator[None, None, None]:
    """Context manager for timing operations.

    Args:
        logger: Logger instance to use.
        operation: Name of the operation being timed.
        level: Log level for the timing message (default: DEBUG).

    Example:
        with log_timing(logger, "execute_tool get_weather"):
            result = await tool.run_async(args, tool_context)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        logger.log(level, "%s completed in %.1fms", operation, duration_ms)
