"""Structured logging for the table store.

Every module logs through structlog with snake_case event names and keyword
context, e.g. ``logger.warning("snapshot_write_retry", destination=..., attempt=2)``.
The database name can be bound as a context variable for events raised on the
calling thread; events from the persistence worker carry ``destination`` instead.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor


def _build_processors(log_format: str) -> list[Processor]:
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        return [*shared, structlog.processors.JSONRenderer(sort_keys=True)]
    return [*shared, structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    database_name: str | None = None,
) -> None:
    """Configure structlog (and the stdlib root logger used by uvicorn).

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: 'json' for machine-readable lines, 'console' for humans
        database_name: Bound as ``database`` on every event when given
    """
    numeric_level = getattr(logging, level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    structlog.configure(
        processors=_build_processors(log_format),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    if database_name:
        structlog.contextvars.bind_contextvars(database=database_name)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Get a (lazily bound) structlog logger.

    Args:
        name: Logger name, usually ``__name__``
        **initial_context: Context bound to every event of this logger
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
