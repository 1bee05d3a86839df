"""Structured logging configuration using *structlog*."""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Iterator

import structlog


def setup_logging(level: str = "INFO", *, json_output: bool | None = None) -> None:
    """Configure *structlog* processors.

    Call once at application startup.  ``json_output=None`` picks the
    console renderer on a TTY and JSON lines otherwise.
    """
    if json_output is None:
        json_output = not sys.stderr.isatty()
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def session_context(session_id: str, **extra: str) -> Iterator[None]:
    """Bind ``session_id`` (and *extra*) to every log line emitted inside the block."""
    tokens = structlog.contextvars.bind_contextvars(session_id=session_id, **extra)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)
