"""
Indexer stage.

Consumes pdf-embedded, refreshes the store and waits until every chunk
of the document is searchable with the document's embedding version,
then moves the document to INDEXED and emits pdf-indexed. A lagging
index raises IndexNotReadyError, which the retry policy absorbs.

Dependencies: docflow.boundary.store
System role: Final stage of the pipeline
"""

import logging

from docflow.core.exceptions import IndexNotReadyError
from docflow.core.pipeline import state_machine
from docflow.core.pipeline.models.document import Document, DocumentStatus
from docflow.core.pipeline.models.events import IndexedEvent, PipelineEvent, Topic
from docflow.core.pipeline.stages.base import StageResult, StageWorker

logger = logging.getLogger(__name__)


class IndexerWorker(StageWorker):
    """Confirm searchability and mark documents INDEXED."""

    name = "indexer"
    consumes = Topic.EMBEDDED
    emits = Topic.INDEXED

    def process(self, event: PipelineEvent) -> StageResult:
        doc = self.load_document(event, required=DocumentStatus.EMBEDDED)
        chunk_count = doc.chunk_count or 0

        if doc.status == DocumentStatus.INDEXED:
            logger.info(
                f"{__name__}:process - {doc.doc_id} already indexed, skipping",
                extra={"doc_id": doc.doc_id},
            )
            return StageResult(
                next_event=event.derive(IndexedEvent, chunk_count=chunk_count),
                skipped=True,
            )

        self.call("confirm_searchable", self._confirm_searchable, doc)
        doc = self.save(state_machine.advance(doc, DocumentStatus.INDEXED))

        logger.info(
            f"{__name__}:process - Indexed {doc.doc_id}",
            extra={"doc_id": doc.doc_id, "chunk_count": chunk_count},
        )
        return StageResult(next_event=event.derive(IndexedEvent, chunk_count=chunk_count))

    def _confirm_searchable(self, doc: Document) -> None:
        self.store.refresh(doc.doc_id)
        visible = self.store.count_searchable(doc.doc_id, doc.embedding_version or "")
        expected = doc.chunk_count or 0
        if visible < expected:
            raise IndexNotReadyError(
                f"{visible}/{expected} chunks searchable",
                details={"doc_id": doc.doc_id, "embedding_version": doc.embedding_version},
            )
