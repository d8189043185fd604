"""
Logger configuration.

One stdout handler on the root logger. Every line carries the trace id
of the event or request being handled, so a document can be followed
across worker processes by grepping its trace id.

Dependencies: logging (stdlib), docflow.observability.correlation
System role: Centralized logging configuration
"""

import logging
import sys

from docflow.observability.correlation import TraceIdFilter

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(trace_id)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

NOISY_LOGGERS = ("urllib3", "botocore", "boto3", "s3transfer", "httpx", "httpcore", "pypdf")


def configure_logging(level: str | int = logging.INFO) -> None:
    """
    Replace root handlers with a trace-aware stdout handler.

    Args:
        level: Root log level (name or number); unknown names fall back to INFO
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(TraceIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
