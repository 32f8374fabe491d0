"""Structured logging for the content service.

structlog is bridged onto stdlib logging so uvicorn and SQLAlchemy records go
through the same renderer. Each entry carries the service name and, inside a
request, the X-Request-ID correlation id. Production renders JSON; debug mode
renders colored console lines.
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

SERVICE_NAME = "content-backend"


def add_correlation_id(logger, method, event_dict):
    """Copy the request correlation id into the entry when one is active."""
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def add_service_name(logger, method, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _build_processor_chain() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_name,
        add_correlation_id,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Install the structlog pipeline and the stdlib handler that renders it.

    Must run before modules call ``structlog.get_logger`` for the first time,
    because loggers are cached on first use.

    Args:
        log_level: Root log level name.
        json_logs: JSON lines when True, console rendering otherwise.
    """
    chain = _build_processor_chain()
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
                "foreign_pre_chain": chain,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": log_level},
        "loggers": {
            "uvicorn.access": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "WARNING"},
            "asyncpg": {"level": "WARNING"},
        },
    })

    structlog.configure(
        processors=chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
