"""API-specific dependencies."""

from .dependencies import (
    get_api_settings,
    get_ingest_worker,
    get_pipeline_container,
    get_retrieval_service,
)

__all__ = [
    "get_api_settings",
    "get_ingest_worker",
    "get_pipeline_container",
    "get_retrieval_service",
]
