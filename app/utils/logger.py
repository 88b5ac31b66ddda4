"""
Logging configuration for CareBoard.

Structured logging through structlog. The signed-in user's email is bound
once per request by the identity middleware and merged into every event
logged while that request is handled.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import Processor

from app.config import settings

# Chatty stdlib loggers from the HTTP and Gemini client stacks
QUIET_LOGGERS = ("httpx", "httpcore", "google_genai")


def configure_logging(
    log_level: Optional[str] = None,
    json_format: bool = True
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Override log level (defaults to settings.log_level)
        json_format: JSON lines when True, coloured console output otherwise
    """
    level = log_level or settings.log_level
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Uvicorn and the genai SDK log through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def bind_user_context(user_email: Optional[str]) -> None:
    """Start a fresh log context for a request made by `user_email`."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(user=user_email or "anonymous")


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger tagged with its component name."""
    return structlog.get_logger(component=name)


configure_logging(
    log_level=settings.log_level,
    json_format=not settings.debug
)
