"""Structured logging configuration."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SERVICE_NAME = "kvsql"


def add_service_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag every entry with the service name."""
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
) -> None:
    """
    Set up structured logging with structlog.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    numeric_level = getattr(logging, level.upper())

    # Route stdlib records (uvicorn, sqlite adapters) to the same stream
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    logging.getLogger("uvicorn.access").setLevel(max(numeric_level, logging.WARNING))

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_service_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a bound logger instance.

    Args:
        name: Component name, bound as ``component``
        **initial_context: Initial context to bind to the logger

    Returns:
        A bound structlog logger
    """
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(component=name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
