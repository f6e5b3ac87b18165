"""Structured logging configuration using structlog.

Provides consistent logging across all search-hub packages with:
- JSON output for production
- Human-readable output for development
- Request-scoped context (tenant, search type) via contextvars
"""

import logging
import sys
from typing import Any, Optional

import structlog


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON for machine parsing (production)
                    If False, output human-readable format (development)

    Example:
        >>> configure_logging(level="DEBUG", json_output=False)
        >>> logger = get_logger(__name__)
        >>> logger.info("hybrid_search_completed", tenant_id="t1", result_count=10)
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.extend(
            [
                structlog.dev.set_exc_info,
                structlog.dev.ConsoleRenderer(colors=True),
            ]
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_settings(settings: Optional[Any] = None) -> None:
    """Configure logging from a Settings instance (default: cached settings)."""
    if settings is None:
        from search_hub_common.config import get_settings

        settings = get_settings()

    configure_logging(
        level=settings.log_level,
        json_output=settings.log_format == "json",
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Configured structlog logger

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("semantic_search_started", tenant_id="t1", k=10)
    """
    return structlog.get_logger(name)


def bind_search_context(**context: Any) -> None:
    """Bind request-scoped fields (tenant_id, search_type, ...) to every log line.

    Context lives in contextvars, so concurrent asyncio tasks do not share it.
    """
    structlog.contextvars.bind_contextvars(**context)


def clear_search_context() -> None:
    """Drop all request-scoped logging fields."""
    structlog.contextvars.clear_contextvars()
