"""
FastAPI application with assembled routers.

Initializes the retrieval API, registers routers under /api/v1 and
configures middleware and lifespan.

Dependencies: fastapi, uvicorn, docflow.api.routers, docflow.observability
System role: API entry point with router assembly and server launch
"""

from contextlib import asynccontextmanager
import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docflow import __version__
from docflow.dependencies import get_container
from docflow.configs import get_settings
from docflow.observability.logger import configure_logging
from docflow.observability.middleware import RequestTraceMiddleware
from .routers import (
    chunks_router,
    documents_router,
    health_router,
    ingest_router,
    query_router,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    # Startup
    logger.info(f"Starting docflow API ({settings.environment}), pre-warming service cache")
    container = get_container()
    _ = container.store
    _ = container.retrieval_service
    logger.info("Service cache pre-warmed")

    yield

    # Shutdown
    container.clear()
    logger.info("Service cache cleared")


def create_app(warm_cache: bool = True) -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Args:
        warm_cache: Build store and retrieval service at startup

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    settings = get_settings()
    app = FastAPI(
        title="docflow Retrieval API",
        description="Search and inspect documents processed by the docflow pipeline",
        version=__version__,
        lifespan=lifespan if warm_cache else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RequestTraceMiddleware)

    # Register all routers with /api/v1 prefix for versioning
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(query_router, prefix="/api/v1")
    app.include_router(chunks_router, prefix="/api/v1")
    app.include_router(documents_router, prefix="/api/v1")
    app.include_router(ingest_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "docflow.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
    )
