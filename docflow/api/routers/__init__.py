"""API routers."""

from .chunks import router as chunks_router
from .documents import router as documents_router
from .health import router as health_router
from .ingest import router as ingest_router
from .query import router as query_router

__all__ = [
    "chunks_router",
    "documents_router",
    "health_router",
    "ingest_router",
    "query_router",
]
