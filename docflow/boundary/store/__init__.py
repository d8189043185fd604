"""
Document store boundary.

Exports: DocumentStore, SearchHit, InMemoryDocumentStore, S3DocumentStore, get_document_store
"""

from docflow.boundary.store.base import DocumentStore, SearchHit
from docflow.boundary.store.memory import InMemoryDocumentStore
from docflow.boundary.store.s3 import S3DocumentStore
from docflow.configs.store import StoreSettings


def get_document_store(settings: StoreSettings) -> DocumentStore:
    """
    Create the configured store backend.

    Args:
        settings: Store settings

    Returns:
        DocumentStore: In-memory or S3-backed store
    """
    if settings.backend == "s3":
        return S3DocumentStore(
            bucket=settings.bucket,
            vectors_bucket=settings.vectors_bucket,
            index_name=settings.index_name,
            prefix=settings.prefix,
            region=settings.region,
            distance_metric=settings.distance_metric,
            overfetch=settings.overfetch,
        )
    return InMemoryDocumentStore(distance_metric=settings.distance_metric)


__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "S3DocumentStore",
    "SearchHit",
    "get_document_store",
]
