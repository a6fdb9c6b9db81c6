"""StoryCloak logging and tracing."""

from .logging import configure_logging, correlation_context, get_logger, trace_operation

__all__ = [
    "configure_logging",
    "correlation_context",
    "get_logger",
    "trace_operation",
]
