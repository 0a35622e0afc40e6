"""Structured logging for the refresh loops, built on structlog.

Every module logs through ``get_logger(__name__)`` with snake_case event
names and key/value context. The three refresh loops each run in their own
asyncio task, so a ``category`` bound with ``bind_loop_context`` only tags
the lines emitted by that loop.
"""

import logging
import os

import structlog

# Chatty third-party loggers: ccxt logs every throttled request, uvicorn
# every API hit.
_QUIET_LOGGERS = ("ccxt", "uvicorn.access", "httpx")


def setup_logging(log_level: str = "INFO", log_format: str | None = None) -> None:
    """Route structlog and stdlib logging through one stderr handler.

    Args:
        log_level: Root level name ("DEBUG" shows per-symbol sample failures).
        log_format: "json" for machine-readable lines, anything else for the
            console renderer. Falls back to the LOG_FORMAT environment variable.
    """
    if log_format is None:
        log_format = os.environ.get("LOG_FORMAT", "console")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format.lower() == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_loop_context(category: str) -> None:
    """Tag every following log line in the current task with its refresh loop."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(category=category)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
