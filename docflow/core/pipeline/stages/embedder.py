"""
Embedder stage.

Consumes pdf-chunked, embeds every chunk lacking the configured
embedding_version, validates each vector's length against the configured
dimension and upserts the chunk with its provenance. Moves the document
to EMBEDDED and emits pdf-embedded.

Dependencies: docflow.boundary.embeddings
System role: Fourth stage of the pipeline
"""

import logging

from docflow.boundary.bus.base import TopicBus
from docflow.boundary.embeddings.client import EmbeddingClient
from docflow.boundary.store.base import DocumentStore
from docflow.core.exceptions import EmbeddingDimMismatch, OrderingAnomalyError
from docflow.core.pipeline import state_machine
from docflow.core.pipeline.models.chunk import Chunk
from docflow.core.pipeline.models.document import DocumentStatus
from docflow.core.pipeline.models.events import EmbeddedEvent, PipelineEvent, Topic
from docflow.core.pipeline.retry import RetryPolicy
from docflow.core.pipeline.stages.base import StageResult, StageWorker

logger = logging.getLogger(__name__)


class EmbedderWorker(StageWorker):
    """Attach vectors to a document's chunks."""

    name = "embedder"
    consumes = Topic.CHUNKED
    emits = Topic.EMBEDDED

    def __init__(
        self,
        store: DocumentStore,
        bus: TopicBus,
        embedding_client: EmbeddingClient,
        embedding_dim: int,
        embedding_version: str,
        batch_size: int = 32,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """
        Initialize embedder worker.

        Args:
            store: Document store
            bus: Topic bus
            embedding_client: Embedding collaborator
            embedding_dim: Expected vector length
            embedding_version: Version tag written on every vector
            batch_size: Chunks per embedding call
            retry_policy: Backoff policy
        """
        super().__init__(store, bus, retry_policy)
        self.embedding_client = embedding_client
        self.embedding_dim = embedding_dim
        self.embedding_version = embedding_version
        self.batch_size = batch_size

    def process(self, event: PipelineEvent) -> StageResult:
        doc = self.load_document(event, required=DocumentStatus.CHUNKED)

        chunks = self.call("list_chunks", self.store.list_chunks, doc.doc_id)
        if doc.chunk_count is not None and len(chunks) != doc.chunk_count:
            raise OrderingAnomalyError(
                f"Expected {doc.chunk_count} chunks, store has {len(chunks)}",
                doc_id=doc.doc_id,
            )

        pending = [c for c in chunks if not c.is_embedded(self.embedding_version)]
        if (
            not pending
            and state_machine.has_reached(doc, DocumentStatus.EMBEDDED)
            and doc.embedding_version == self.embedding_version
        ):
            logger.info(
                f"{__name__}:process - {doc.doc_id} already embedded with "
                f"{self.embedding_version}, skipping",
                extra={"doc_id": doc.doc_id},
            )
            return StageResult(
                next_event=event.derive(
                    EmbeddedEvent,
                    embedded_count=0,
                    embedding_version=self.embedding_version,
                ),
                skipped=True,
            )

        if state_machine.has_reached(doc, DocumentStatus.EMBEDDED):
            doc = self.save(state_machine.reopen(
                doc, DocumentStatus.CHUNKED, reason=f"embedding version {self.embedding_version}"
            ))

        for start in range(0, len(pending), self.batch_size):
            batch = pending[start:start + self.batch_size]
            self.call("upsert_chunks", self.store.upsert_chunks, self._embed_batch(batch))

        doc = self.save(state_machine.advance(
            doc, DocumentStatus.EMBEDDED, embedding_version=self.embedding_version
        ))

        logger.info(
            f"{__name__}:process - Embedded {len(pending)} chunks for {doc.doc_id}",
            extra={"doc_id": doc.doc_id, "model": self.embedding_client.model_id},
        )
        return StageResult(
            next_event=event.derive(
                EmbeddedEvent,
                embedded_count=len(pending),
                embedding_version=self.embedding_version,
            )
        )

    def _embed_batch(self, batch: list[Chunk]) -> list[Chunk]:
        results = self.call(
            "embed", self.embedding_client.embed_many, [c.chunk_text for c in batch]
        )
        embedded = []
        for chunk, result in zip(batch, results):
            if result.dim != self.embedding_dim or len(result.vector) != self.embedding_dim:
                raise EmbeddingDimMismatch(
                    expected=self.embedding_dim,
                    actual=len(result.vector),
                    details={"doc_id": chunk.doc_id, "model": result.model_id},
                )
            embedded.append(
                Chunk(
                    **chunk.model_dump(exclude={"embedding", "embedding_model", "embedding_dim", "embedding_version"}),
                    embedding=result.vector,
                    embedding_model=result.model_id,
                    embedding_dim=result.dim,
                    embedding_version=self.embedding_version,
                )
            )
        return embedded
