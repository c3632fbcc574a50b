"""
JSON log output for txmigrate.

Library modules only call logging.getLogger(__name__) and attach structured
data with extra={"context": {...}}; they never install handlers. The CLI (or
an application that wants the same format) calls setup_logging() once,
which routes every record to stderr as one JSON object per line:

    {"timestamp": "2025-11-02T08:30:45Z", "level": "INFO",
     "component": "txmigrate.engine", "message": "Applying up migration 2",
     "context": {...}}

stdout stays free for command output.

Examples:
    >>> from txmigrate.utils.logging import setup_logging, get_logger
    >>> setup_logging(verbose=True)
    >>> get_logger("txmigrate.engine").info(
    ...     "Schema migrated", extra={"context": {"to_version": 3}}
    ... )
"""

import json
import logging
import sys
from typing import Any

from txmigrate.utils.time import utc_timestamp


class JSONFormatter(logging.Formatter):
    """
    Render a LogRecord as a single JSON line.

    Keys: timestamp (UTC, 'Z' suffix), level, component (logger name) and
    message, plus "context" when the record carries a dict under that name
    and "exception" when it carries exc_info. Values json cannot encode
    (paths, enums) are written with str().
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": utc_timestamp(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            payload["context"] = context

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logging(verbose: bool = False) -> None:
    """
    Install the JSON stderr handler on the root logger.

    Replaces any handlers already on the root logger, so calling it twice
    does not duplicate output.

    Args:
        verbose: Log at DEBUG instead of the default WARNING, which shows
            every migration step
    """
    level = logging.DEBUG if verbose else logging.WARNING

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(component: str) -> logging.Logger:
    return logging.getLogger(component)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
) -> None:
    """
    Shorthand for logger.log(level, message, extra={"context": context}).

    Example:
        >>> log_with_context(
        ...     get_logger("txmigrate.cli"),
        ...     logging.INFO,
        ...     "Migration command finished",
        ...     context={"from_version": 1, "to_version": 3},
        ... )
    """
    if context is None:
        logger.log(level, message)
    else:
        logger.log(level, message, extra={"context": context})
