"""
FastAPI dependency providers.

Thin Depends() wrappers over the shared PipelineContainer. Tests swap
the container through app.dependency_overrides[get_pipeline_container].

Dependencies: fastapi, docflow.dependencies
System role: DI for HTTP routes
"""

from fastapi import Depends

from docflow.configs.api import ApiSettings
from docflow.core.pipeline.stages import IngestWorker
from docflow.core.retrieval import RetrievalService
from docflow.dependencies import PipelineContainer, get_container


def get_pipeline_container() -> PipelineContainer:
    """Get the process-wide container."""
    return get_container()


def get_api_settings(
    container: PipelineContainer = Depends(get_pipeline_container),
) -> ApiSettings:
    """Get HTTP API settings."""
    return container.settings.api


def get_retrieval_service(
    container: PipelineContainer = Depends(get_pipeline_container),
) -> RetrievalService:
    """
    Get retrieval service instance.

    Args:
        container: Injected container

    Returns:
        RetrievalService: Service bound to the configured store and embedding model
    """
    return container.retrieval_service


def get_ingest_worker(
    container: PipelineContainer = Depends(get_pipeline_container),
) -> IngestWorker:
    """Get ingest worker instance."""
    return container.worker("ingest")
