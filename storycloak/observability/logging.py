"""Structured logging with correlation and operation tracing."""

from __future__ import annotations

import contextvars
import logging
import sys
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Generator, Optional

import structlog

from ..core.config import LoggingConfig, get_config

# Context variable for correlation IDs
correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

_HANDLER_NAME = "storycloak"


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add correlation ID to log events."""
    corr_id = correlation_id.get()
    if corr_id:
        event_dict["correlation_id"] = corr_id
    return event_dict


def _shared_processors() -> list[Any]:
    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_correlation_id,
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure structlog and route stdlib loggers through the same renderer.

    Package modules log through ``logging.getLogger(__name__)``; their records
    are rendered by structlog's ``ProcessorFormatter`` so the console (or JSON)
    output is uniform regardless of which API emitted the event.
    """
    if config is None:
        config = get_config().logging

    if config.format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    shared = _shared_processors()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    if config.output == "file" and config.file_path:
        handler: logging.Handler = logging.FileHandler(config.file_path, encoding="utf-8")
    elif config.output == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root_logger.removeHandler(existing)
            existing.close()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))


def get_logger(name: str) -> Any:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


@contextmanager
def correlation_context(corr_id: Optional[str] = None) -> Generator[str, None, None]:
    """Context manager for correlation ID."""
    if corr_id is None:
        corr_id = str(uuid.uuid4())

    token = correlation_id.set(corr_id)
    try:
        yield corr_id
    finally:
        correlation_id.reset(token)


@contextmanager
def trace_operation(operation: str, **kwargs: Any) -> Generator[dict[str, Any], None, None]:
    """Log start, completion or failure of an operation with its duration.

    The yielded dict collects attributes that are attached to the completion
    event. Events go through the stdlib logger so library callers that never
    call :func:`configure_logging` get no output on stdout.
    """
    logger = logging.getLogger(__name__)
    start_time = datetime.now(timezone.utc)
    trace_id = str(uuid.uuid4())
    attributes: dict[str, Any] = dict(kwargs)

    logger.debug(f"Operation started: {operation} (trace_id={trace_id})")

    try:
        yield attributes
    except Exception as e:
        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.error(
            f"Operation failed: {operation} after {duration:.3f}s "
            f"({type(e).__name__}: {e}) (trace_id={trace_id})"
        )
        raise
    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    details = ", ".join(f"{key}={value}" for key, value in attributes.items())
    logger.info(
        f"Operation completed: {operation} in {duration:.3f}s"
        + (f" [{details}]" if details else "")
        + f" (trace_id={trace_id})"
    )
