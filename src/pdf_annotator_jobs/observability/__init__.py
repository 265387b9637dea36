"""Observability module (structured logging)."""

from __future__ import annotations

from pdf_annotator_jobs.observability.logging import (
    LogLevel,
    bind_job_context,
    clear_job_context,
    clear_request_context,
    configure_logging,
    generate_request_id,
    get_logger,
    get_request_id,
    set_request_id,
)


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
