"""
Structured logging setup using structlog.

Configured once at application start; modules grab a logger with
``get_logger(__name__)`` and log events with key-value context.
"""

import logging
import sys

import structlog

from supportdesk.core.config import get_settings


def setup_logging() -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Output format and level come from ``LOG_FORMAT`` and ``LOG_LEVEL``.
    """
    settings = get_settings()
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_audit_event(
    action: str,
    *,
    actor_id: str | None = None,
    role: str | None = None,
    ticket_id: str | None = None,
    **kwargs,
) -> None:
    """
    Emit an audit event.

    Audit events are structured logs on the ``audit`` logger, so they can be
    routed separately from application logs.
    """
    structlog.get_logger("audit").info(
        action,
        actor_id=actor_id,
        role=role,
        ticket_id=ticket_id,
        **kwargs,
    )
