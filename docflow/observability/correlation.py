"""
Trace ID context manager.

Manages trace ID propagation across worker loops and request handlers
using contextvars. The trace ID rides on every pipeline event so a
document can be followed from ingest to index.

Dependencies: contextvars
System role: Request and event tracing across service boundaries
"""

from contextlib import contextmanager
from contextvars import ContextVar
import logging
from typing import Iterator
import uuid

trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")


def new_trace_id() -> str:
    """Generate a fresh trace ID."""
    return uuid.uuid4().hex


def set_trace_id(trace_id: str | None = None) -> str:
    """
    Set trace ID in context.

    Args:
        trace_id: Optional trace ID (generates new if None)

    Returns:
        str: The trace ID that was set
    """
    value = trace_id or new_trace_id()
    trace_id_ctx.set(value)
    return value


def get_trace_id() -> str:
    """
    Get current trace ID from context.

    Returns:
        str: Current trace ID, empty string when unset
    """
    return trace_id_ctx.get()


def clear_trace_id() -> None:
    """Clear trace ID from context."""
    trace_id_ctx.set("")


@contextmanager
def trace_scope(trace_id: str | None = None) -> Iterator[str]:
    """Bind a trace ID for the duration of a block."""
    token = trace_id_ctx.set(trace_id or new_trace_id())
    try:
        yield trace_id_ctx.get()
    finally:
        trace_id_ctx.reset(token)


class TraceIdFilter(logging.Filter):
    """Inject the current trace ID into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_trace_id() or "-"
        return True
