"""
Structured logging helpers.

Context passed as keyword arguments becomes `extra` fields on the record.
Values are flattened to short strings so a chunk body or an embedding
vector never ends up verbatim in the logs.

Dependencies: logging (stdlib), pydantic
System role: Log context for stage workers and runners
"""

import logging
from typing import Any

from pydantic import BaseModel

MAX_VALUE_LENGTH = 200

# LogRecord attributes that cannot be overridden through `extra`
_RESERVED = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


def safe_log_value(value: Any, max_length: int = MAX_VALUE_LENGTH) -> str:
    """
    Render a context value as a bounded string.

    Float sequences are summarized as vectors, other containers by size,
    pydantic models by class name. Long strings are truncated.

    Args:
        value: Value to render
        max_length: Maximum length before truncating

    Returns:
        str: Log-safe representation
    """
    if value is None:
        return "None"
    if isinstance(value, (list, tuple, set)):
        if value and all(isinstance(v, float) for v in value):
            return f"vector({len(value)} dims)"
        return f"{type(value).__name__}({len(value)} items)"
    if isinstance(value, dict):
        return f"dict({len(value)} keys)"
    if isinstance(value, BaseModel):
        return type(value).__name__

    try:
        text = value if isinstance(value, str) else str(value)
    except Exception as e:
        return f"<unable to log: {type(e).__name__}>"
    if len(text) > max_length:
        return text[:max_length] + f"... (truncated, {len(text)} total)"
    return text


def event_context(event: Any) -> dict[str, Any]:
    """Correlation fields of a pipeline event for log context."""
    return {
        "doc_id": event.doc_id,
        "event_id": event.event_id,
        "attempt": event.attempt,
    }


def _extra(context: dict[str, Any]) -> dict[str, str]:
    return {
        (f"ctx_{key}" if key in _RESERVED else key): safe_log_value(val)
        for key, val in context.items()
    }


def log_with_context(logger: logging.Logger, level: int, message: str, **context) -> None:
    """Log a message with context fields attached as `extra`."""
    logger.log(level, message, extra=_extra(context))


def log_exception_with_context(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    **context,
) -> None:
    """
    Log an exception at ERROR with its traceback and context fields.

    The exception class and message are added as `error_type` and
    `error_msg`.
    """
    extra = _extra(context)
    extra["error_type"] = type(exc).__name__
    extra["error_msg"] = safe_log_value(str(exc))
    logger.error(message, exc_info=exc, extra=extra)
