"""structlog setup for the search service."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from .settings import settings
from .utils import request_id_ctx

SERVICE_NAME = "teambuilding-search"
SERVICE_VERSION = "0.1.0"

# third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def add_service_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp request id (when inside a request), service and deployment on each event."""
    request_id = request_id_ctx.get("")
    if request_id:
        event_dict["request_id"] = request_id
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", SERVICE_VERSION)
    event_dict.setdefault("environment", settings.SENTRY_ENVIRONMENT)
    return event_dict


def _renderer(json_logs: bool) -> tuple[Processor, Processor]:
    if json_logs:
        return structlog.processors.TimeStamper(fmt="iso"), structlog.processors.JSONRenderer()
    return (
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        structlog.dev.ConsoleRenderer(),
    )


def configure_structlog(json_logs: bool = False) -> None:
    """Configure structlog once at startup.

    JSON output is used whenever ``json_logs`` is set or DEBUG is off; the
    console renderer is only for local debugging.
    """
    stamper, renderer = _renderer(json_logs or not settings.DEBUG)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_service_context,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            stamper,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=logging.INFO)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["SERVICE_NAME", "SERVICE_VERSION", "configure_structlog", "get_logger"]
