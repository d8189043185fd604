"""
Document store interface.

Holds one Document record per doc_id, many Chunk records per document
(correlated by doc_id) and the OCR artifact of each document. Every
write is an upsert keyed by a deterministic id. Search combines vector
similarity with metadata filters and only returns chunks of documents
that reached INDEXED.

Dependencies: pydantic, docflow.core.pipeline.models
System role: System of record shared by stage workers and retrieval
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from docflow.core.pipeline.models.chunk import Chunk
from docflow.core.pipeline.models.document import Document
from docflow.core.pipeline.models.ocr import OcrResult


class SearchHit(BaseModel):
    """A chunk matched by vector search."""

    chunk: Chunk
    score: float = Field(description="Similarity score, higher is closer")


class DocumentStore(ABC):
    """Keyed-upsert store for documents, chunks and OCR artifacts."""

    # Documents

    @abstractmethod
    def get_document(self, doc_id: str) -> Document | None:
        """Fetch a document record, None when absent."""

    @abstractmethod
    def upsert_document(self, document: Document) -> None:
        """Create or replace the record keyed by document.doc_id."""

    # OCR artifacts

    @abstractmethod
    def put_ocr_artifact(self, doc_id: str, ocr: OcrResult) -> None:
        """Store the OCR output of a document, replacing any previous one."""

    @abstractmethod
    def get_ocr_artifact(self, doc_id: str) -> OcrResult | None:
        """Fetch the OCR output of a document, None when absent."""

    # Chunks

    @abstractmethod
    def upsert_chunks(self, chunks: list[Chunk]) -> None:
        """Create or replace chunk records keyed by chunk_id."""

    @abstractmethod
    def list_chunks(self, doc_id: str) -> list[Chunk]:
        """All chunks of a document in (page_start, sequence_index) order."""

    @abstractmethod
    def delete_chunks(self, doc_id: str, chunk_ids: list[str]) -> None:
        """Remove chunk records (and their vectors) by id."""

    # Index

    @abstractmethod
    def refresh(self, doc_id: str | None = None) -> None:
        """Make written chunk vectors visible to search."""

    @abstractmethod
    def count_searchable(self, doc_id: str, embedding_version: str) -> int:
        """Number of a document's chunks currently searchable with the given version."""

    @abstractmethod
    def search(
        self,
        vector: list[float],
        k: int,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchHit]:
        """
        Nearest-neighbour search over chunks of INDEXED documents.

        Args:
            vector: Query embedding
            k: Maximum number of hits
            filters: Metadata filters (see docflow.boundary.store.filters)

        Returns:
            list[SearchHit]: Hits ordered by descending score

        Raises:
            InvalidFilterError: Malformed filters
            StoreUnavailableError: Backend failure
        """

    def ping(self) -> bool:
        """Readiness probe."""
        return True
