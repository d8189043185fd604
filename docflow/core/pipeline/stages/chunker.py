"""
Chunker stage.

Consumes pdf-ocr-done, turns the stored OCR artifact into the chunk set
of the current policy, upserts every chunk, removes chunks of a previous
pass that the new set no longer contains, and only then moves the
document to CHUNKED. Chunks whose id is unchanged keep their embedding.

Dependencies: docflow.core.pipeline.chunking
System role: Third stage of the pipeline
"""

import logging

from docflow.boundary.bus.base import TopicBus
from docflow.boundary.store.base import DocumentStore
from docflow.core.exceptions import OrderingAnomalyError
from docflow.core.pipeline import state_machine
from docflow.core.pipeline.chunking import PageAwareChunker
from docflow.core.pipeline.models.chunk import Chunk
from docflow.core.pipeline.models.document import DocumentStatus
from docflow.core.pipeline.models.events import ChunkedEvent, PipelineEvent, Topic
from docflow.core.pipeline.retry import RetryPolicy
from docflow.core.pipeline.stages.base import StageResult, StageWorker

logger = logging.getLogger(__name__)

EMBEDDING_FIELDS = ("embedding", "embedding_model", "embedding_dim", "embedding_version")


class ChunkerWorker(StageWorker):
    """Split OCR output into deterministic chunks."""

    name = "chunker"
    consumes = Topic.OCR_DONE
    emits = Topic.CHUNKED

    def __init__(
        self,
        store: DocumentStore,
        bus: TopicBus,
        chunker: PageAwareChunker,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """
        Initialize chunker worker.

        Args:
            store: Document store
            bus: Topic bus
            chunker: Chunking policy implementation
            retry_policy: Backoff policy
        """
        super().__init__(store, bus, retry_policy)
        self.chunker = chunker

    def process(self, event: PipelineEvent) -> StageResult:
        doc = self.load_document(event, required=DocumentStatus.OCR_DONE)

        ocr = self.call("get_ocr_artifact", self.store.get_ocr_artifact, doc.doc_id)
        if ocr is None:
            raise OrderingAnomalyError("OCR artifact missing for OCR_DONE document", doc_id=doc.doc_id)

        chunks = self.chunker.chunk(doc.doc_id, ocr)
        new_ids = {c.chunk_id for c in chunks}
        existing = {c.chunk_id: c for c in self.call("list_chunks", self.store.list_chunks, doc.doc_id)}

        if (
            state_machine.has_reached(doc, DocumentStatus.CHUNKED)
            and set(existing) == new_ids
            and doc.chunk_count == len(chunks)
        ):
            logger.info(
                f"{__name__}:process - Chunk set unchanged for {doc.doc_id}, skipping",
                extra={"doc_id": doc.doc_id, "chunk_count": len(chunks)},
            )
            return StageResult(
                next_event=event.derive(ChunkedEvent, chunk_count=len(chunks)),
                skipped=True,
            )

        if state_machine.has_reached(doc, DocumentStatus.CHUNKED):
            # Hide the document from search before its chunk set changes
            doc = self.save(state_machine.reopen(doc, DocumentStatus.OCR_DONE, reason="chunk set changed"))

        merged = [self._carry_embedding(c, existing.get(c.chunk_id)) for c in chunks]
        self.call("upsert_chunks", self.store.upsert_chunks, merged)

        stale = sorted(set(existing) - new_ids)
        if stale:
            self.call("delete_chunks", self.store.delete_chunks, doc.doc_id, stale)

        doc = self.save(state_machine.advance(doc, DocumentStatus.CHUNKED, chunk_count=len(chunks)))

        logger.info(
            f"{__name__}:process - Chunked {doc.doc_id}",
            extra={"doc_id": doc.doc_id, "chunk_count": len(chunks), "removed": len(stale)},
        )
        return StageResult(next_event=event.derive(ChunkedEvent, chunk_count=len(chunks)))

    @staticmethod
    def _carry_embedding(chunk: Chunk, previous: Chunk | None) -> Chunk:
        """Same chunk_id means same text and span, so a stored vector stays valid."""
        if previous is None or previous.embedding is None:
            return chunk
        return chunk.model_copy(update={f: getattr(previous, f) for f in EMBEDDING_FIELDS})
