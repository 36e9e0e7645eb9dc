"""
Logging configuration for the streaming gateway.

Modules log through stdlib `logging`; records are rendered by structlog
so they share one format (JSON in production, console in DEBUG) and
carry any bound context such as the session id of the producer emitting
them.
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any

import structlog

from ..config import settings

SERVICE_NAME = "resumable-gateway"

# Libraries that log every request or connection at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "websockets")


def _add_service(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
        _add_service,
    ]


def configure_logging(level: str | None = None) -> None:
    """
    Configure structured logging for the gateway.

    Args:
        level: Override for the configured log level
    """
    log_level = level or settings.log_level
    is_dev = log_level == "DEBUG"

    if is_dev:
        renderer: Any = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=_shared_processors() + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    final_processors: list[Any] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if not is_dev:
        final_processors.append(structlog.processors.dict_tracebacks)
    final_processors.append(renderer)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=final_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, log_level))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=log_level,
        format="console" if is_dev else "json",
    )


def session_context(session_id: str) -> AbstractContextManager:
    """Bind `session_id` to every log record emitted inside the block."""
    return structlog.contextvars.bound_contextvars(session_id=session_id)
