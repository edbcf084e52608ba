"""Structured logging configuration for the Faith encounter engine.

The engine logs through structlog so that rule loading and turn resolution
emit keyword-rich events that work both in a terminal and as JSON lines.
Level and format come from the root settings (``FAITH_LOG_LEVEL`` and
``FAITH_JSON_LOGS``).

Example:
    >>> from faith_encounter.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Turn resolved", turn=3, events=12)
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor

from faith_encounter.core.config import Settings, get_settings


if TYPE_CHECKING:
    from contextlib import AbstractContextManager


def configure_logging(settings: Settings | None = None) -> None:
    """Configure engine-wide logging from settings.

    Args:
        settings: Settings to read the level and format from. Defaults to
            the cached settings singleton.

    Example:
        >>> configure_logging(Settings(log_level="DEBUG"))
    """
    settings = settings or get_settings()
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.json_logs:
        renderer: Processor = structlog.processors.JSONRenderer()
        processors = [*shared_processors, structlog.processors.format_exc_info, renderer]
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
        processors = [*shared_processors, renderer]

    numeric_level = getattr(logging, settings.log_level)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=numeric_level,
        stream=sys.stdout,
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a configured logger instance.

    Args:
        name: Optional name for the logger (typically __name__).
    """
    return structlog.get_logger(name)


def log_context(**kwargs: Any) -> AbstractContextManager[None]:
    """Bind context variables for the duration of a ``with`` block.

    Previously bound values are restored on exit, so a turn resolved while
    rules are loading keeps the rule file in its log entries.

    Args:
        **kwargs: Key-value pairs to bind to the logging context.

    Example:
        >>> with log_context(rule_file="core.xml"):
        ...     logger.debug("Parsing")
    """
    return structlog.contextvars.bound_contextvars(**kwargs)


__all__ = [
    "configure_logging",
    "get_logger",
    "log_context",
]
