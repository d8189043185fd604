"""
Provider-routed object store.

Dispatches each SourceRef to the store registered for its provider.

Dependencies: docflow.boundary.object_store.s3, docflow.configs.object_storage
System role: Configuration-selected ObjectStore for the pipeline
"""

from docflow.boundary.object_store.base import ObjectStore
from docflow.boundary.object_store.s3 import S3ObjectStore
from docflow.configs.object_storage import ObjectStorageSettings
from docflow.core.exceptions import PermanentInputError
from docflow.core.pipeline.models.document import SourceRef


class ProviderRouter:
    """ObjectStore that routes by SourceRef.provider."""

    def __init__(self, stores: dict[str, ObjectStore]) -> None:
        self._stores = stores

    def _store(self, ref: SourceRef) -> ObjectStore:
        try:
            return self._stores[ref.provider]
        except KeyError as e:
            raise PermanentInputError(
                f"No object store configured for provider {ref.provider}",
                details={"uri": ref.uri},
            ) from e

    def exists(self, ref: SourceRef) -> bool:
        return self._store(ref).exists(ref)

    def read(self, ref: SourceRef) -> bytes:
        return self._store(ref).read(ref)


def build_object_store(settings: ObjectStorageSettings) -> ProviderRouter:
    """
    Build S3-API stores for every provider from settings.

    Args:
        settings: Object storage settings

    Returns:
        ProviderRouter: Store routing gcs, s3 and minio references
    """
    timeouts = {
        "connect_timeout": settings.connect_timeout,
        "read_timeout": settings.read_timeout,
    }
    return ProviderRouter({
        "s3": S3ObjectStore(region=settings.s3_region, **timeouts),
        "minio": S3ObjectStore(
            endpoint_url=settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            region="us-east-1",
            **timeouts,
        ),
        "gcs": S3ObjectStore(
            endpoint_url=settings.gcs_endpoint,
            access_key=settings.gcs_hmac_access_key,
            secret_key=settings.gcs_hmac_secret,
            region="auto",
            send_version=False,
            **timeouts,
        ),
    })
