"""
maestro.core.logging - Structured Logging Setup
=================================================

Every Maestro module logs through structlog with a module-level logger and
a per-component bound logger:

    logger = structlog.get_logger()
    self._logger = logger.bind(component="event_bus")
    self._logger.info("event_published", event_type=..., correlation_id=...)

This module wires structlog onto the standard library so that both the
structlog loggers and the stdlib loggers (used by the in-memory store)
share one level and one output stream. ``Maestro.initialize`` calls
``configure_logging(config.log_level)``; embedding applications that
configure logging themselves can simply skip it.
"""

from __future__ import annotations

import logging
import sys

import structlog

from maestro.core.exceptions import ConfigurationError


_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def configure_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structlog and stdlib logging for Maestro.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Render one JSON object per line instead of the
            human-readable console format.

    Raises:
        ConfigurationError: If ``level`` is not a known logging level.
    """
    level_name = level.upper()
    if level_name not in _VALID_LEVELS:
        raise ConfigurationError(
            message=f"Unknown log level: {level}",
            error_code="INVALID_LOG_LEVEL",
            details={"level": level, "valid": list(_VALID_LEVELS)},
        )
    numeric_level = getattr(logging, level_name)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )
    logging.getLogger("maestro").setLevel(numeric_level)

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    # Loggers are bound at import time, so caching must stay off for a
    # later reconfiguration (e.g. update_config) to take effect.
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
