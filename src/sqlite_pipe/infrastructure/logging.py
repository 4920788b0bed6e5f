"""Structured logging configuration.

The driver never configures logging on its own. Applications that want
its events call setup_logging() (or bring their own structlog setup) and
enable ``observability.logging_enabled`` or pass a logger explicitly.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import Processor

LOGGER_NAME = "sqlite_pipe"


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    stream: TextIO | None = None,
) -> None:
    """
    Set up structured logging with structlog.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
        stream: Destination; defaults to stderr so that log lines never mix
            with an application's own stdout output
    """
    stream = stream or sys.stderr
    log_level = getattr(logging, level.upper())

    logging.basicConfig(format="%(message)s", stream=stream, level=log_level)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a bound logger instance.

    Args:
        name: Logger name; defaults to the driver's logger name
        **initial_context: Initial context to bind to the logger, such as
            the executable or database path of one wrapper

    Returns:
        A bound structlog logger
    """
    logger = structlog.get_logger(name or LOGGER_NAME)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


class NullLogger:
    """Logger sink that discards every event.

    Default sink for a wrapper constructed without a logger, so that an
    embedded driver stays silent unless the application opts in.
    """

    def bind(self, **_: Any) -> NullLogger:
        return self

    def debug(self, event: str, **kw: Any) -> None:
        return None

    def info(self, event: str, **kw: Any) -> None:
        return None

    def warning(self, event: str, **kw: Any) -> None:
        return None

    def error(self, event: str, **kw: Any) -> None:
        return None
