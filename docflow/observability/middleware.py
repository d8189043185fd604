"""
Request tracing middleware.

Binds the caller's X-Trace-ID (or a fresh one) for the duration of a
request, echoes it on the response and logs one line per request with
status and latency. Handlers that publish pipeline events pick the same
trace id up from the context.

Dependencies: starlette, docflow.observability
System role: Request/response observability injection
"""

import logging
import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from docflow.observability.correlation import trace_scope
from docflow.observability.log_utils import log_exception_with_context, log_with_context

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-ID"

# Polled by orchestrators; logged at DEBUG
QUIET_PATHS = ("/api/v1/health",)


class RequestTraceMiddleware(BaseHTTPMiddleware):
    """Trace id binding plus access logging."""

    async def dispatch(self, request: Request, call_next):
        method, path = request.method, request.url.path
        level = logging.DEBUG if path.startswith(QUIET_PATHS) else logging.INFO

        with trace_scope(request.headers.get(TRACE_HEADER)) as trace_id:
            start = time.perf_counter()
            try:
                response: Response = await call_next(request)
            except Exception as e:
                log_exception_with_context(
                    logger,
                    f"{method} {path} - unhandled {type(e).__name__}",
                    e,
                    method=method,
                    path=path,
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                )
                raise

            log_with_context(
                logger,
                level,
                f"{method} {path} - {response.status_code}",
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                client_host=request.client.host if request.client else None,
            )

        response.headers[TRACE_HEADER] = trace_id
        return response
