"""Structured logging for scoring runs.

structlog renders both structlog events and plain ``logging`` records
through one root handler.  Run context (``trace_id``, ``period``,
``trader_id``) lives in :mod:`structlog.contextvars`, so every line
emitted while scoring a trader carries it, whichever API produced it.

Usage::

    setup_logging(level="INFO", format="json")

    with scoring_context(trace_id=new_trace_id(), period=str(period)):
        ...
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

import structlog

HANDLER_NAME = "trader_kpi"


def new_trace_id() -> str:
    """A fresh trace id; bind it with :func:`scoring_context`."""
    return str(uuid.uuid4())


def get_trace_id() -> str:
    """The trace id bound in the current context, or ``""``."""
    return structlog.contextvars.get_contextvars().get("trace_id", "")


@contextmanager
def scoring_context(**fields: Any) -> Iterator[None]:
    """Bind run fields for every log line emitted inside the block.

    ``None`` values are skipped.  asyncio tasks created inside the block
    inherit a copy, so concurrent traders never see each other's fields.
    """
    bound = {k: v for k, v in fields.items() if v is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def setup_logging(
    level: str = "INFO",
    format: str = "json",
) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format: "json" for production, "console" for development.

    Safe to call more than once; the previous handler is replaced.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if format == "json":
        renderers: list[Any] = [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer()]

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *renderers,
            ],
        )
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for a module."""
    return structlog.get_logger(name)
