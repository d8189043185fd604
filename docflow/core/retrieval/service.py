"""
Retrieval service.

Read-only operations over the document store:
- query(): embed free text and run a vector + filter search restricted
  to INDEXED documents
- get_chunks(): every chunk of one document in page/sequence order,
  whatever the document's status
- get_document(): the document record

Failures surface as typed errors (InvalidFilterError,
DocumentNotFoundError, EmbeddingServiceError, StoreUnavailableError) so
callers can tell a failed query from an empty result.

Dependencies: docflow.boundary.store, docflow.boundary.embeddings
System role: Query side of the system
"""

import logging
import time
from typing import Any

from docflow.boundary.embeddings.client import EmbeddingClient
from docflow.boundary.store.base import DocumentStore
from docflow.boundary.store.filters import normalize_filters
from docflow.core.exceptions import DocumentNotFoundError, EmbeddingDimMismatch
from docflow.core.pipeline.models.document import Document, DocumentStatus
from docflow.core.retrieval.models import ChunkListing, ChunkView, QueryResult

logger = logging.getLogger(__name__)


class RetrievalService:
    """Query and inspect indexed documents."""

    def __init__(
        self,
        store: DocumentStore,
        embedding_client: EmbeddingClient,
        embedding_dim: int | None = None,
        max_k: int = 100,
    ) -> None:
        """
        Initialize retrieval service.

        Args:
            store: Document store
            embedding_client: Same embedding model the Embedder uses
            embedding_dim: Expected query vector length (None skips the check)
            max_k: Upper bound on results per query
        """
        self.store = store
        self.embedding_client = embedding_client
        self.embedding_dim = embedding_dim
        self.max_k = max_k

    def query(
        self,
        text: str,
        filters: dict[str, Any] | None = None,
        k: int = 5,
    ) -> list[QueryResult]:
        """
        Search chunks of INDEXED documents by text similarity.

        Args:
            text: Free-text query
            filters: Optional metadata filters
            k: Maximum number of results

        Returns:
            list[QueryResult]: Results ordered by descending score

        Raises:
            ValueError: Empty text or k out of range
            InvalidFilterError: Malformed filters
            EmbeddingServiceError: Query could not be embedded
            EmbeddingDimMismatch: Query model disagrees with the index dimension
            StoreUnavailableError: Store search failed
        """
        if not text or not text.strip():
            raise ValueError("Query text must not be empty")
        if not 1 <= k <= self.max_k:
            raise ValueError(f"k must be between 1 and {self.max_k}")
        # Validate before paying for an embedding call
        normalize_filters(filters)

        start = time.perf_counter()
        embedded = self.embedding_client.embed_query(text)
        if self.embedding_dim is not None and embedded.dim != self.embedding_dim:
            raise EmbeddingDimMismatch(
                expected=self.embedding_dim,
                actual=embedded.dim,
                details={"model": embedded.model_id},
            )

        hits = self.store.search(embedded.vector, k=k, filters=filters)
        results = [
            QueryResult(
                chunk_id=hit.chunk.chunk_id,
                doc_id=hit.chunk.doc_id,
                chunk_text=hit.chunk.chunk_text,
                score=hit.score,
                metadata=hit.chunk.metadata,
            )
            for hit in hits
        ]

        logger.info(
            f"{__name__}:query - {len(results)} results in "
            f"{(time.perf_counter() - start) * 1000:.2f}ms",
            extra={"k": k, "filtered": bool(filters), "model": embedded.model_id},
        )
        return results

    def get_document(self, doc_id: str) -> Document:
        """
        Fetch a document record.

        Raises:
            DocumentNotFoundError: Unknown doc_id
            StoreUnavailableError: Store read failed
        """
        doc = self.store.get_document(doc_id)
        if doc is None:
            raise DocumentNotFoundError(doc_id)
        return doc

    def get_chunks(self, doc_id: str) -> ChunkListing:
        """
        List every chunk of a document regardless of its status.

        Args:
            doc_id: Document identifier

        Returns:
            ChunkListing: Status plus chunks in (page_start, sequence_index) order

        Raises:
            DocumentNotFoundError: Unknown doc_id
            StoreUnavailableError: Store read failed
        """
        doc = self.get_document(doc_id)
        chunks = sorted(
            self.store.list_chunks(doc_id),
            key=lambda c: (c.page_start, c.sequence_index),
        )
        return ChunkListing(
            doc_id=doc_id,
            status=doc.status,
            searchable=doc.status == DocumentStatus.INDEXED,
            chunks=[ChunkView.from_chunk(c) for c in chunks],
        )
