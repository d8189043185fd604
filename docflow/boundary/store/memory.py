"""
In-memory document store.

Dict-backed records with a separate searchable snapshot: chunk writes
become visible to search only after refresh(), the way a search index
with a refresh interval behaves. Vector scoring uses numpy.

Dependencies: numpy
System role: Store backend for local development and tests
"""

import logging
import threading
from typing import Any

import numpy as np

from docflow.boundary.store.base import DocumentStore, SearchHit
from docflow.boundary.store.filters import matches, normalize_filters
from docflow.core.pipeline.models.chunk import Chunk
from docflow.core.pipeline.models.document import Document, DocumentStatus
from docflow.core.pipeline.models.ocr import OcrResult

logger = logging.getLogger(__name__)


def score_vectors(matrix: np.ndarray, query: np.ndarray, metric: str) -> np.ndarray:
    """
    Score each row of matrix against query, higher is closer.

    Args:
        matrix: (n, dim) candidate vectors
        query: (dim,) query vector
        metric: cosine, dot or euclidean

    Returns:
        np.ndarray: (n,) scores
    """
    if metric == "dot":
        return matrix @ query
    if metric == "euclidean":
        return -np.linalg.norm(matrix - query, axis=1)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    norms[norms == 0] = 1.0
    return (matrix @ query) / norms


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe DocumentStore kept in process memory."""

    def __init__(self, distance_metric: str = "cosine", auto_refresh: bool = False) -> None:
        """
        Initialize empty store.

        Args:
            distance_metric: cosine, dot or euclidean
            auto_refresh: Make chunk writes searchable immediately
        """
        if distance_metric not in ("cosine", "dot", "euclidean"):
            raise ValueError(f"Unsupported distance metric: {distance_metric}")
        self._metric = distance_metric
        self._auto_refresh = auto_refresh
        self._lock = threading.RLock()
        self._documents: dict[str, Document] = {}
        self._ocr: dict[str, OcrResult] = {}
        self._chunks: dict[str, dict[str, Chunk]] = {}
        self._searchable: dict[str, dict[str, Chunk]] = {}

    def get_document(self, doc_id: str) -> Document | None:
        with self._lock:
            doc = self._documents.get(doc_id)
            return doc.model_copy(deep=True) if doc else None

    def upsert_document(self, document: Document) -> None:
        with self._lock:
            self._documents[document.doc_id] = document.model_copy(deep=True)

    def put_ocr_artifact(self, doc_id: str, ocr: OcrResult) -> None:
        with self._lock:
            self._ocr[doc_id] = ocr.model_copy(deep=True)

    def get_ocr_artifact(self, doc_id: str) -> OcrResult | None:
        with self._lock:
            ocr = self._ocr.get(doc_id)
            return ocr.model_copy(deep=True) if ocr else None

    def upsert_chunks(self, chunks: list[Chunk]) -> None:
        with self._lock:
            for chunk in chunks:
                self._chunks.setdefault(chunk.doc_id, {})[chunk.chunk_id] = chunk.model_copy(deep=True)
            if self._auto_refresh:
                for doc_id in {c.doc_id for c in chunks}:
                    self.refresh(doc_id)

    def list_chunks(self, doc_id: str) -> list[Chunk]:
        with self._lock:
            chunks = [c.model_copy(deep=True) for c in self._chunks.get(doc_id, {}).values()]
        return sorted(chunks, key=lambda c: (c.page_start, c.sequence_index))

    def delete_chunks(self, doc_id: str, chunk_ids: list[str]) -> None:
        with self._lock:
            for chunk_id in chunk_ids:
                self._chunks.get(doc_id, {}).pop(chunk_id, None)
                self._searchable.get(doc_id, {}).pop(chunk_id, None)

    def refresh(self, doc_id: str | None = None) -> None:
        with self._lock:
            doc_ids = [doc_id] if doc_id else list(self._chunks)
            for key in doc_ids:
                self._searchable[key] = {
                    chunk_id: chunk
                    for chunk_id, chunk in self._chunks.get(key, {}).items()
                    if chunk.embedding is not None
                }

    def count_searchable(self, doc_id: str, embedding_version: str) -> int:
        with self._lock:
            return sum(
                1 for c in self._searchable.get(doc_id, {}).values()
                if c.embedding_version == embedding_version
            )

    def search(
        self,
        vector: list[float],
        k: int,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchHit]:
        normalized = normalize_filters(filters)
        with self._lock:
            candidates = [
                chunk
                for doc_id, chunks in self._searchable.items()
                if self._is_visible(doc_id)
                for chunk in chunks.values()
                if chunk.embedding_version == self._documents[doc_id].embedding_version
                and len(chunk.embedding) == len(vector)
                and matches(chunk, normalized)
            ]
        if not candidates or k <= 0:
            return []

        matrix = np.asarray([c.embedding for c in candidates], dtype=np.float64)
        scores = score_vectors(matrix, np.asarray(vector, dtype=np.float64), self._metric)
        ranked = sorted(
            zip(candidates, scores.tolist()),
            key=lambda pair: (-pair[1], pair[0].chunk_id),
        )
        return [
            SearchHit(chunk=chunk.model_copy(deep=True), score=float(score))
            for chunk, score in ranked[:k]
        ]

    def _is_visible(self, doc_id: str) -> bool:
        doc = self._documents.get(doc_id)
        return doc is not None and doc.status == DocumentStatus.INDEXED
