"""
In-memory object store for tests and local runs.

Dependencies: None
System role: Test double for ObjectStore
"""

from docflow.core.exceptions import ObjectNotFound
from docflow.core.pipeline.models.document import SourceRef


class InMemoryObjectStore:
    """ObjectStore keyed by (provider, bucket, key, version)."""

    def __init__(self) -> None:
        self._objects: dict[tuple, bytes] = {}

    @staticmethod
    def _key(ref: SourceRef) -> tuple:
        return (ref.provider, ref.bucket, ref.key, ref.version)

    def put(self, ref: SourceRef, data: bytes) -> None:
        self._objects[self._key(ref)] = data

    def delete(self, ref: SourceRef) -> None:
        self._objects.pop(self._key(ref), None)

    def exists(self, ref: SourceRef) -> bool:
        return self._key(ref) in self._objects

    def read(self, ref: SourceRef) -> bytes:
        try:
            return self._objects[self._key(ref)]
        except KeyError as e:
            raise ObjectNotFound(ref.uri) from e
