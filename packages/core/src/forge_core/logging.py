"""
Structured logging for iterforge.

structlog events and plain stdlib records (uvicorn, the model SDKs) go
through one ProcessorFormatter on stdout, so both render the same way:
JSON lines in production, coloured key/value pairs on a terminal.

Every event carries the service name. Events logged while an HTTP
request is being handled also carry its correlation id; build runs are
started from the request task and inherit it.
"""

import logging
import sys
from contextvars import ContextVar, Token
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Libraries that log every request at INFO
NOISY_LOGGERS = (
    "anthropic",
    "openai",
    "httpx",
    "httpcore",
    "asyncio",
    "uvicorn.access",
    "watchfiles",
)


def set_correlation_id(correlation_id: str | None) -> Token[str | None]:
    """Tag log events in the current context with a request id."""
    return correlation_id_var.set(correlation_id)


def add_correlation_id(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def add_service_name(service_name: str) -> Processor:
    """Processor stamping every event with the service name."""

    def processor(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def _renderers(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "iterforge",
) -> None:
    """
    Route structlog and stdlib logging to stdout.

    Args:
        log_level: Root level name (DEBUG, INFO, WARNING, ...)
        log_format: "json" or "console"
        service_name: Value of the ``service`` key on every event
    """
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_correlation_id,
        add_service_name(service_name),
    ]

    structlog.configure(
        processors=[
            *shared,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderers(log_format),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level.upper())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
