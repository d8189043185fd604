"""
Object storage capability interface.

Any provider that can answer exists() and read() for a SourceRef
satisfies the pipeline; providers are selected by configuration.

Dependencies: typing
System role: Source PDF access for the Ingest and OCR stages
"""

from typing import Protocol, runtime_checkable

from docflow.core.pipeline.models.document import SourceRef


@runtime_checkable
class ObjectStore(Protocol):
    """Read-only access to source objects."""

    def exists(self, ref: SourceRef) -> bool:
        """
        Check whether the object exists and is readable.

        Raises:
            ObjectStoreUnavailable: Provider could not be reached
        """
        ...

    def read(self, ref: SourceRef) -> bytes:
        """
        Read the object's bytes.

        Raises:
            ObjectNotFound: Object does not exist
            ObjectStoreUnavailable: Provider could not be reached
        """
        ...
