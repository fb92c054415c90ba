"""
Structured logging for the visit compliance engine.

Every event carries the service name and version, the request correlation ID
when one is bound, and the visit and engine operation inside ``bind_visit``.
Production renders JSON; development renders to the console, with colour
only when stdout is a terminal.
"""

import logging
import sys
import uuid
from collections.abc import Callable
from contextlib import AbstractContextManager
from contextvars import ContextVar
from typing import Any

import structlog

from compliance_engine.constants import (
    GENERATED_REQUEST_ID_LENGTH,
    MAX_REQUEST_ID_LENGTH,
    SERVICE_NAME,
    SERVICE_VERSION,
)

# Third-party loggers held at WARNING regardless of the configured level
NOISY_LOGGERS = ("httpx", "httpcore", "redis", "asyncio", "uvicorn.access", "mcp")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """
    Bind a request ID to the current context.

    A caller-supplied ID is truncated to MAX_REQUEST_ID_LENGTH; without one a
    short random ID is generated.
    """
    if request_id:
        new_id = request_id[:MAX_REQUEST_ID_LENGTH]
    else:
        new_id = uuid.uuid4().hex[:GENERATED_REQUEST_ID_LENGTH]
    request_id_var.set(new_id)
    return new_id


def add_request_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    request_id = get_request_id()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_service(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", SERVICE_VERSION)
    return event_dict


def bind_visit(visit_id: str, operation: str) -> AbstractContextManager:
    """Bind the visit and engine operation to every log event in the block."""
    return structlog.contextvars.bound_contextvars(visit_id=visit_id, operation=operation)


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: Render JSON lines; otherwise use the console renderer
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Callable] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_request_id,
        add_service,
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, usually named after the calling module."""
    return structlog.get_logger(name)
