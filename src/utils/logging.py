"""Structured logging setup using structlog.

One processor chain feeds either a coloured console renderer (development)
or a JSON renderer (production, or when ``json_output`` is set).  The
standard-library root logger is routed through the same chain, so records
from uvicorn, httpx and chromadb come out in the same format as ours.

Request-scoped fields (``request_id``, ``radicado``) are carried in
structlog context variables; see :func:`bind_request_context`.
"""

import logging
import os
import sys

import structlog

# Third-party loggers that are chatty at INFO (one line per HTTP request or
# per ChromaDB segment load).  They are held at WARNING unless DEBUG is on.
_NOISY_LOGGERS = ("httpx", "httpcore", "chromadb", "aiosqlite")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR.
        json_output: Force JSON lines.  ``APP_ENV=production`` also selects JSON.

    Returns:
        A configured structlog BoundLogger.
    """
    level = log_level.upper()
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    renderer: structlog.types.Processor
    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *shared,
                renderer,
            ],
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    third_party_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger named *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)


def bind_request_context(**fields: object) -> None:
    """Replace the request-scoped logging context with *fields*.

    Every log line emitted in the current task afterwards carries them,
    including lines from providers that never see the request.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**fields)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
