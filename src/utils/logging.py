# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging configuration using structlog.

Application modules log through the standard library
(``logging.getLogger(__name__)`` with ``%s`` arguments). setup_logging routes
those records through structlog's ProcessorFormatter, so they pick up the
same timestamp, level and request context as native structlog events and are
rendered as colored console lines in development and JSON elsewhere.

Request context (request id, account id, role) is bound per request by the
auth middleware and merged into every record logged while it is handled.

Example:
    >>> setup_logging(get_settings())
    >>> bind_request_context("3f2a9c", user_id="acct-1", role="admin")
    >>> logging.getLogger("src.domains.imports.students").info("Imported %d rows", 12)
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from src.core.config.settings import Settings

QUIET_LOGGERS = (
    "uvicorn.access",
    "asyncpg",
    "redis",
    "sqlalchemy.engine",
    "multipart",
)


def setup_logging(settings: "Settings") -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        settings: Application settings; uses log_level, debug and environment.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.is_development or settings.debug:
        renderer: Processor = structlog.dev.ConsoleRenderer(colors=True)
    else:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(
    request_id: str,
    user_id: str | None = None,
    role: str | None = None,
) -> None:
    """Attach request identifiers to every record logged in this context.

    Replaces any context left from a previous request.
    """
    structlog.contextvars.clear_contextvars()
    context: dict[str, str] = {"request_id": request_id}
    if user_id:
        context["user_id"] = user_id
    if role:
        context["role"] = role
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
