"""
Observability module.

Logging configuration, trace ID propagation and HTTP middleware.
"""

from docflow.observability.correlation import get_trace_id, set_trace_id, trace_scope
from docflow.observability.logger import configure_logging

__all__ = [
    "configure_logging",
    "get_trace_id",
    "set_trace_id",
    "trace_scope",
]
