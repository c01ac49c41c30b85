"""Structured logging configuration (structlog).

Features:
- JSON lines in production and staging, colored console output elsewhere
- Service, environment and storage backend on every entry
- Standard library loggers (uvicorn, SQLAlchemy) routed to the same stream

Events are snake_case names with key/value context, e.g.
``logger.warning("dangling_reference", source="ins_1", target="raw_9")``.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from src.core.config import get_settings


_JSON_ENVIRONMENTS = frozenset({"production", "staging"})

# Chatty third-party loggers kept at WARNING regardless of log_level
_QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access")


def add_service_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor adding service context to each event.

    Existing keys in ``event_dict`` are kept; the service fields are
    added alongside them.
    """
    settings = get_settings()
    event_dict["service"] = settings.service_name
    event_dict["environment"] = settings.environment
    event_dict["backend"] = settings.storage_backend
    return event_dict


def _build_processors(use_json: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_service_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if use_json:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    return processors


def configure_logging() -> None:
    """Configure structlog and the standard library root logger.

    Safe to call repeatedly; each call replaces the previous configuration.
    """
    settings = get_settings()
    level = logging.getLevelName(settings.log_level.upper())

    structlog.configure(
        processors=_build_processors(settings.environment in _JSON_ENVIRONMENTS),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Optional logger name (module name recommended).

    Example:
        ```python
        from src.core.logging import get_logger

        logger = get_logger(__name__)
        logger.info("lineage_computed", root="ins_1", nodes=4)
        ```
    """
    return structlog.get_logger(name)


# Convenience type alias
Logger = structlog.BoundLogger
