"""Structured logging for the BeatFinder API.

structlog renders both its own events and stdlib records from the
services, so a resolver attempt logged with logging.getLogger() carries the
same request_id/user fields as the API event that triggered it.
"""

import logging
import sys

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars

NOISY_LOGGERS = ("httpx", "httpcore", "googleapiclient.discovery_cache", "aiosqlite", "uvicorn.access")


def drop_color_message_key(_logger, _method_name, event_dict):
    """uvicorn duplicates its message under color_message; keep one copy."""
    event_dict.pop("color_message", None)
    return event_dict


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Route structlog and stdlib logging through one renderer.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: JSON lines for hosted deployments, colored console otherwise
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        drop_color_message_key,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if json_output:
        renderer = structlog.processors.JSONRenderer()
        final_processors = [structlog.processors.format_exc_info, renderer]
    else:
        final_processors = [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final_processors],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # The request middleware logs every request itself
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request(request_id: str, method: str, path: str) -> None:
    """Attach request fields to every event logged while the request runs."""
    clear_contextvars()
    bind_contextvars(request_id=request_id, method=method, path=path)


def bind_user(slug: str, state=None) -> None:
    """Tag the rest of the request's events with the acting username.

    Endpoints run in a child context of the request middleware, so the slug
    is also left on request.state for the middleware's own events.
    """
    bind_contextvars(user=slug)
    if state is not None:
        state.user = slug


def clear_request() -> None:
    clear_contextvars()
