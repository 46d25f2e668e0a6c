"""Structured logging setup built on structlog."""

import logging
import sys
from typing import Any, Optional, TextIO

import structlog

_SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    stream: Optional[TextIO] = None,
) -> structlog.stdlib.BoundLogger:
    """
    Set up structured logging for the broker.

    Records from structlog and from plain ``logging`` users (uvicorn, the
    kubernetes client) go through the same renderer.

    :param log_level: Logging level (e.g., DEBUG, INFO, WARNING, ERROR).
    :param log_format: "console" for human readable output, "json" for one object per line.
    :param stream: Stream to write to, stdout by default.
    :return: Configured logger for the broker.
    """
    if log_format == "json":
        final_processors: list[Any] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final_processors],
    )
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    return get_logger("crossplane_broker")


def get_logger(name: str) -> Any:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


def bind_request_context(correlation_id: str, **values: Any) -> None:
    """Attach request scoped values to every log event of the current context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id, **values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
