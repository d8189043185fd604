"""
Object storage boundary.

Exports: ObjectStore, S3ObjectStore, InMemoryObjectStore, ProviderRouter, build_object_store
"""

from docflow.boundary.object_store.base import ObjectStore
from docflow.boundary.object_store.memory import InMemoryObjectStore
from docflow.boundary.object_store.registry import ProviderRouter, build_object_store
from docflow.boundary.object_store.s3 import S3ObjectStore

__all__ = [
    "InMemoryObjectStore",
    "ObjectStore",
    "ProviderRouter",
    "S3ObjectStore",
    "build_object_store",
]
