"""Downstream Trigger — Structured logging configuration.

Uses structlog for structured, levelled logging with consistent key names
across all layers.  All log entries include:
    - timestamp (ISO-8601)
    - level
    - module (Python logger name)
    - upstream / downstream / build_number (bound via context variables
      while an edge is being evaluated)
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

# Context variables, injected into log records when set.
_ctx_upstream: ContextVar[str | None] = ContextVar("upstream", default=None)
_ctx_downstream: ContextVar[str | None] = ContextVar("downstream", default=None)
_ctx_build_number: ContextVar[int | None] = ContextVar("build_number", default=None)


def bind_trigger_context(
    upstream: str | None = None,
    downstream: str | None = None,
    build_number: int | None = None,
) -> None:
    """Bind edge evaluation context to the current thread."""
    if upstream is not None:
        _ctx_upstream.set(upstream)
    if downstream is not None:
        _ctx_downstream.set(downstream)
    if build_number is not None:
        _ctx_build_number.set(build_number)


def clear_trigger_context() -> None:
    _ctx_upstream.set(None)
    _ctx_downstream.set(None)
    _ctx_build_number.set(None)


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


def _inject_context_vars(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    """Add ContextVar values to every log record."""
    if (upstream := _ctx_upstream.get()) is not None:
        event_dict.setdefault("upstream", upstream)
    if (downstream := _ctx_downstream.get()) is not None:
        event_dict.setdefault("downstream", downstream)
    if (build_number := _ctx_build_number.get()) is not None:
        event_dict.setdefault("build_number", build_number)
    return event_dict


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def configure_logging(
    level: str = "info",
    format: str = "console",
    log_file: str | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Call once at host startup, before any log statements.

    Args:
        level:    One of debug, info, warning, error, critical.
        format:   ``"console"`` for human-readable output, ``"json"`` for
                  machine-readable structured logs.
        log_file: Optional path to write logs to in addition to stdout.
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _inject_context_vars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handlers: list[logging.Handler] = []

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(level.upper())


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger for *name*.

    Usage::

        log = get_logger(__name__)
        log.info("build_scheduled", downstream="api-tests", quiet_period=5)
    """
    return structlog.get_logger(name)
