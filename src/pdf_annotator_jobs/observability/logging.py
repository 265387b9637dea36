"""Structured logging configuration for pdf-annotator-jobs.

Logs are emitted through structlog. On a TTY the console renderer is used;
otherwise output is logfmt so that log shippers can parse it. Two pieces of
correlation context travel through contextvars:

- ``request_id`` for HTTP handlers (set by the request ID middleware)
- ``job_id`` / ``job_type`` for queue workers (set per delivered message)
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog
from structlog.contextvars import (
    bind_contextvars,
    clear_contextvars,
    merge_contextvars,
    unbind_contextvars,
)
from structlog.processors import TimeStamper, add_log_level


if TYPE_CHECKING:
    from structlog.typing import EventDict, WrappedLogger

__all__ = [
    "LogLevel",
    "bind_job_context",
    "clear_job_context",
    "clear_request_context",
    "configure_logging",
    "generate_request_id",
    "get_logger",
    "get_request_id",
    "set_request_id",
]


class LogLevel(StrEnum):
    """Supported log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    def to_stdlib_level(self) -> int:
        """Return the matching ``logging`` module constant."""
        level: int = getattr(logging, self.name)
        return level


_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

_JOB_CONTEXT_KEYS = ("job_id", "job_type")


def generate_request_id() -> str:
    """Return a short random request ID."""
    return uuid.uuid4().hex[:8]


def get_request_id() -> str | None:
    """Return the request ID bound to the current context, if any."""
    return _request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Bind a request ID to the current context.

    Args:
        request_id: ID to bind. A new one is generated when None.

    Returns:
        The bound request ID.
    """
    if request_id is None:
        request_id = generate_request_id()

    _request_id_var.set(request_id)
    bind_contextvars(request_id=request_id)
    return request_id


def clear_request_context() -> None:
    """Reset the request ID and every structlog contextvar."""
    _request_id_var.set(None)
    clear_contextvars()


def bind_job_context(job_id: str, job_type: str) -> None:
    """Attach the job being processed to every subsequent log line."""
    bind_contextvars(job_id=job_id, job_type=job_type)


def clear_job_context() -> None:
    """Remove job correlation keys bound by :func:`bind_job_context`."""
    unbind_contextvars(*_JOB_CONTEXT_KEYS)


def add_request_id(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Processor adding ``request_id`` when it is set but not yet merged."""
    del logger, method_name
    if "request_id" not in event_dict:
        request_id = get_request_id()
        if request_id is not None:
            event_dict["request_id"] = request_id
    return event_dict


def _create_renderer(
    *,
    colors: bool,
) -> structlog.dev.ConsoleRenderer | structlog.processors.LogfmtRenderer:
    if colors:
        return structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )
    return structlog.processors.LogfmtRenderer(
        key_order=["timestamp", "level", "event", "request_id", "job_id"],
        drop_missing=True,
        bool_as_flag=False,
    )


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    *,
    force_colors: bool | None = None,
) -> None:
    """Configure structlog and stdlib logging for the process.

    Call once at startup (CLI callback or app factory).

    Args:
        level: Minimum level, as a LogLevel or a case-insensitive name.
        force_colors: Force colour output on or off. Auto-detected from
            stderr when None.

    Example:
        >>> configure_logging(level="DEBUG", force_colors=False)
    """
    if isinstance(level, str):
        level = LogLevel(level.lower())

    if force_colors is not None:
        use_colors = force_colors
    else:
        use_colors = (
            sys.stderr is not None
            and hasattr(sys.stderr, "isatty")
            and sys.stderr.isatty()
        )

    processors: list[structlog.typing.Processor] = [
        merge_contextvars,
        add_request_id,
        add_log_level,
        TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _create_renderer(colors=use_colors),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level.to_stdlib_level()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level.to_stdlib_level(),
        force=True,
    )


def get_logger(
    name: str | None = None,
    **initial_context: object,
) -> structlog.BoundLogger:
    """Return a structlog logger, optionally bound to initial context.

    Example:
        >>> logger = get_logger(__name__, component="export-worker")
        >>> logger.info("export_job_completed", job_id="...")
    """
    log: structlog.BoundLogger = structlog.get_logger(name)
    if initial_context:
        log = log.bind(**initial_context)
    return log
