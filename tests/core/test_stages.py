"""
Tests for the stage workers.

Each stage is driven directly through handle() or through its runner
over the in-memory bus and store.
"""

from langchain_core.embeddings import DeterministicFakeEmbedding

from docflow.boundary.embeddings.client import EmbeddingClient
from docflow.boundary.store.memory import InMemoryDocumentStore
from docflow.core.exceptions import ErrorCategory, OcrServiceError, OcrUnsupportedInput
from docflow.core.pipeline import state_machine
from docflow.core.pipeline.chunking import ChunkingPolicy, PageAwareChunker
from docflow.core.pipeline.ids import compute_doc_id
from docflow.core.pipeline.models.document import Document, DocumentStatus, SourceRef
from docflow.core.pipeline.models.events import (
    ChunkedEvent,
    EmbeddedEvent,
    IngestEvent,
    OcrDoneEvent,
    Topic,
)
from docflow.core.pipeline.runner import StageRunner
from docflow.core.pipeline.stages import ChunkerWorker, EmbedderWorker, IndexerWorker
from tests.factories import FAST_RETRY, PDF_BYTES


class TestIngestWorker:
    """Test the Ingest stage."""

    def test_missing_object_emits_error_and_creates_nothing(self, pipeline, store, bus) -> None:
        """Should publish ObjectNotFound on pdf-errors without creating a document."""
        source = SourceRef.from_uri("s3://bucket/missing.pdf")

        outcome = pipeline.ingest(source)

        assert outcome.status == "failed"
        assert outcome.error_kind == "ObjectNotFound"
        assert store.get_document(compute_doc_id(source)) is None
        assert bus.events(Topic.INGEST) == []
        errors = bus.events(Topic.ERRORS)
        assert len(errors) == 1
        assert errors[0].failed_stage == "ingest"
        assert errors[0].error_category == ErrorCategory.PERMANENT_INPUT

    def test_existing_object_creates_received_document(self, pipeline, store, bus) -> None:
        """Should create a RECEIVED document and emit pdf-ingest with the trace id."""
        source = pipeline.put_pdf("s3://bucket/a.pdf")

        outcome = pipeline.ingest(source, trace_id="trace-1")

        doc = store.get_document(outcome.doc_id)
        assert outcome.status == "processed"
        assert doc.status == DocumentStatus.RECEIVED
        assert doc.trace_id == "trace-1"
        events = bus.events(Topic.INGEST)
        assert [e.doc_id for e in events] == [outcome.doc_id]
        assert events[0].trace_id == "trace-1"
        assert events[0].attempt == 0

    def test_reingest_reuses_document(self, pipeline, store, bus) -> None:
        """Should return the same doc_id and leave the existing record untouched."""
        source = pipeline.put_pdf("gcs://bucket/pdfs/a.pdf")

        first = pipeline.ingest(source)
        created = store.get_document(first.doc_id)
        second = pipeline.ingest(source)

        assert second.doc_id == first.doc_id
        assert store.get_document(second.doc_id) == created
        assert len(bus.events(Topic.INGEST)) == 2

    def test_generates_trace_id_when_absent(self, pipeline, bus) -> None:
        """Should thread a generated trace id on the first event."""
        pipeline.ingest(pipeline.put_pdf("s3://bucket/a.pdf"))

        assert bus.events(Topic.INGEST)[0].trace_id

    def test_ingest_notification(self, pipeline, store) -> None:
        """Should ingest every PDF object named in an S3 notification."""
        pipeline.put_pdf("s3://bucket/pdfs/a.pdf")
        body = {
            "Records": [
                {
                    "eventSource": "aws:s3",
                    "eventName": "ObjectCreated:Put",
                    "s3": {"bucket": {"name": "bucket"}, "object": {"key": "pdfs/a.pdf"}},
                },
                {
                    "eventSource": "aws:s3",
                    "eventName": "ObjectCreated:Put",
                    "s3": {"bucket": {"name": "bucket"}, "object": {"key": "notes.txt"}},
                },
            ]
        }

        outcomes = pipeline.container.worker("ingest").ingest_notification(body)

        assert [o.status for o in outcomes] == ["processed"]
        assert store.get_document(outcomes[0].doc_id) is not None


class TestOcrWorker:
    """Test the OCR stage."""

    def test_ocr_moves_document_to_ocr_done(self, pipeline, store, bus) -> None:
        """Should store the artifact, record hash and page count, and emit pdf-ocr-done."""
        outcome = pipeline.ingest(pipeline.put_pdf("s3://bucket/a.pdf"))

        pipeline.runners[0].drain()

        doc = store.get_document(outcome.doc_id)
        assert doc.status == DocumentStatus.OCR_DONE
        assert doc.page_count == 2
        assert doc.content_hash
        assert store.get_ocr_artifact(doc.doc_id).page_count == 2
        event = bus.events(Topic.OCR_DONE)[0]
        assert event.page_count == 2
        assert event.content_hash == doc.content_hash

    def test_creates_document_for_external_producer(self, pipeline, store, bus) -> None:
        """Should create the document when pdf-ingest was published without Ingest."""
        source = pipeline.put_pdf("minio://bucket/external.pdf")
        bus.publish(Topic.INGEST, IngestEvent(doc_id=compute_doc_id(source), source=source))

        pipeline.runners[0].drain()

        doc = store.get_document(compute_doc_id(source))
        assert doc.status == DocumentStatus.OCR_DONE
        assert [t.status for t in doc.transitions] == [
            DocumentStatus.RECEIVED,
            DocumentStatus.OCR_DONE,
        ]

    def test_rejects_mismatched_doc_id(self, container, fake_ocr, bus) -> None:
        """Should escalate a doc_id that does not derive from the source."""
        source = SourceRef.from_uri("s3://bucket/a.pdf")

        outcome = container.worker("ocr").handle(IngestEvent(doc_id="forged", source=source))

        assert outcome.status == "failed"
        assert outcome.error_kind == "MessageParseError"
        assert fake_ocr.calls == 0

    def test_skips_identical_bytes(self, pipeline, fake_ocr, store) -> None:
        """Should not call OCR again for a document already OCR'd with the same bytes."""
        source = pipeline.put_pdf("s3://bucket/a.pdf")
        first = pipeline.ingest(source)
        pipeline.runners[0].drain()

        pipeline.ingest(source)
        outcomes = pipeline.runners[0].drain()

        assert [o.status for o in outcomes] == ["skipped"]
        assert fake_ocr.calls == 1
        assert store.get_document(first.doc_id).run == 1

    def test_changed_bytes_start_new_run(self, pipeline, fake_ocr, store) -> None:
        """Should re-run OCR in a new run when the object bytes changed."""
        source = pipeline.put_pdf("s3://bucket/a.pdf")
        outcome = pipeline.ingest(source)
        pipeline.run()
        old_hash = store.get_document(outcome.doc_id).content_hash

        pipeline.object_store.put(source, PDF_BYTES + b"% revised\n")
        pipeline.ingest(source)
        pipeline.runners[0].drain()

        doc = store.get_document(outcome.doc_id)
        assert fake_ocr.calls == 2
        assert doc.run == 2
        assert doc.status == DocumentStatus.OCR_DONE
        assert doc.content_hash != old_hash
        assert state_machine.is_forward_only(doc)

    def test_transient_failure_retried_then_escalated(self, pipeline, fake_ocr, store, bus) -> None:
        """Should retry OCR up to the attempt limit, then emit a transient error."""
        fake_ocr.error = OcrServiceError("endpoint down")
        outcome = pipeline.ingest(pipeline.put_pdf("s3://bucket/a.pdf"))

        results = pipeline.runners[0].drain()

        assert fake_ocr.calls == FAST_RETRY.max_attempts
        assert [r.status for r in results] == ["failed"]
        error = bus.events(Topic.ERRORS)[0]
        assert error.error_kind == "OcrServiceError"
        assert error.error_category == ErrorCategory.TRANSIENT_INFRA
        assert error.attempt == 1
        doc = store.get_document(outcome.doc_id)
        assert doc.status == DocumentStatus.RECEIVED
        assert doc.last_error.stage == "ocr"
        assert doc.transitions[-1].status == DocumentStatus.ERROR

    def test_unsupported_input_not_retried(self, pipeline, fake_ocr, bus) -> None:
        """Should escalate a rejected document after a single attempt."""
        fake_ocr.error = OcrUnsupportedInput("encrypted")
        pipeline.ingest(pipeline.put_pdf("s3://bucket/a.pdf"))

        pipeline.runners[0].drain()

        assert fake_ocr.calls == 1
        assert bus.events(Topic.ERRORS)[0].error_category == ErrorCategory.PERMANENT_INPUT

    def test_unexpected_exception_is_internal(self, pipeline, fake_ocr, bus) -> None:
        """Should escalate an uncategorized exception as internal."""
        fake_ocr.error = KeyError("pages")
        pipeline.ingest(pipeline.put_pdf("s3://bucket/a.pdf"))

        pipeline.runners[0].drain()

        error = bus.events(Topic.ERRORS)[0]
        assert error.error_kind == "KeyError"
        assert error.error_category == ErrorCategory.INTERNAL


class TestChunkerWorker:
    """Test the Chunker stage."""

    def test_unknown_document_is_ordering_anomaly(self, container, bus) -> None:
        """Should escalate an event for a document that does not exist."""
        event = OcrDoneEvent(
            doc_id="ghost",
            source=SourceRef.from_uri("s3://bucket/ghost.pdf"),
            page_count=1,
            content_hash="0" * 64,
        )

        outcome = container.worker("chunker").handle(event)

        assert outcome.status == "failed"
        assert outcome.error_category == ErrorCategory.ORDERING_ANOMALY.value
        assert bus.events(Topic.ERRORS)[0].doc_id == "ghost"

    def test_policy_change_replaces_chunk_set(self, pipeline, store, bus) -> None:
        """Should delete stale chunks and hide the document until it is indexed again."""
        outcome = pipeline.process("s3://bucket/a.pdf")
        doc = store.get_document(outcome.doc_id)
        old_ids = {c.chunk_id for c in store.list_chunks(doc.doc_id)}

        rechunker = ChunkerWorker(
            store,
            bus,
            PageAwareChunker(ChunkingPolicy(max_size=15, overlap=0, unit="tokens", min_chunk_size=0)),
            retry_policy=FAST_RETRY,
        )
        result = rechunker.handle(
            OcrDoneEvent(
                doc_id=doc.doc_id,
                source=doc.source,
                page_count=doc.page_count,
                content_hash=doc.content_hash,
            )
        )

        doc = store.get_document(doc.doc_id)
        chunks = store.list_chunks(doc.doc_id)
        new_ids = {c.chunk_id for c in chunks}
        assert result.status == "processed"
        assert doc.status == DocumentStatus.CHUNKED
        assert doc.run == 2
        assert doc.chunk_count == len(chunks)
        assert not old_ids & new_ids
        results = pipeline.container.retrieval_service.query("p1w3", filters={"doc_id": doc.doc_id})
        assert results == []

    def test_unchanged_chunk_set_skips(self, pipeline, store) -> None:
        """Should skip and keep embeddings when OCR output has not changed."""
        outcome = pipeline.process("s3://bucket/a.pdf")
        doc = store.get_document(outcome.doc_id)

        result = pipeline.container.worker("chunker").handle(
            OcrDoneEvent(
                doc_id=doc.doc_id,
                source=doc.source,
                page_count=doc.page_count,
                content_hash=doc.content_hash,
            )
        )

        assert result.status == "skipped"
        assert store.get_document(doc.doc_id).status == DocumentStatus.INDEXED
        assert all(c.embedding is not None for c in store.list_chunks(doc.doc_id))


class TestEmbedderWorker:
    """Test the Embedder stage."""

    def _to_chunked(self, pipeline, uri: str = "s3://bucket/a.pdf") -> str:
        outcome = pipeline.ingest(pipeline.put_pdf(uri))
        pipeline.runners[0].drain()
        pipeline.runners[1].drain()
        return outcome.doc_id

    def test_dimension_mismatch_escalates(self, pipeline, store, bus) -> None:
        """Should emit EmbeddingDimMismatch and leave the document CHUNKED."""
        doc_id = self._to_chunked(pipeline)
        worker = EmbedderWorker(
            store,
            bus,
            EmbeddingClient(DeterministicFakeEmbedding(size=768), model_id="fake-768"),
            embedding_dim=512,
            embedding_version="v1",
            retry_policy=FAST_RETRY,
        )

        outcomes = StageRunner(worker, bus, failure_backoff=0).drain()

        assert [o.status for o in outcomes] == ["failed"]
        error = bus.events(Topic.ERRORS)[0]
        assert error.error_kind == "EmbeddingDimMismatch"
        assert error.error_category == ErrorCategory.PERMANENT_INPUT
        assert error.failed_stage == "embedder"
        doc = store.get_document(doc_id)
        assert doc.status == DocumentStatus.CHUNKED
        assert doc.last_error.error_kind == "EmbeddingDimMismatch"
        assert all(c.embedding is None for c in store.list_chunks(doc_id))
        assert bus.events(Topic.EMBEDDED) == []

    def test_embeds_with_provenance(self, pipeline, store, bus) -> None:
        """Should write vector, model, dim and version on every chunk."""
        doc_id = self._to_chunked(pipeline)

        pipeline.runners[2].drain()

        chunks = store.list_chunks(doc_id)
        assert chunks
        for chunk in chunks:
            assert chunk.embedding_model == "fake-32"
            assert chunk.embedding_dim == len(chunk.embedding) == 32
            assert chunk.embedding_version == "v1"
        event = bus.events(Topic.EMBEDDED)[0]
        assert event.embedded_count == len(chunks)
        assert store.get_document(doc_id).status == DocumentStatus.EMBEDDED

    def test_chunk_count_mismatch_is_ordering_anomaly(self, pipeline, store) -> None:
        """Should refuse to embed while the store holds fewer chunks than recorded."""
        doc_id = self._to_chunked(pipeline)
        first = store.list_chunks(doc_id)[0]
        store.delete_chunks(doc_id, [first.chunk_id])

        outcomes = pipeline.runners[2].drain()

        assert outcomes[0].error_category == ErrorCategory.ORDERING_ANOMALY.value

    def test_new_version_reembeds(self, pipeline, store, bus, embedding_client) -> None:
        """Should re-embed every chunk in a new run when the version changes."""
        outcome = pipeline.process("s3://bucket/a.pdf")
        doc = store.get_document(outcome.doc_id)
        worker = EmbedderWorker(
            store,
            bus,
            embedding_client,
            embedding_dim=32,
            embedding_version="v2",
            retry_policy=FAST_RETRY,
        )

        result = worker.handle(ChunkedEvent(doc_id=doc.doc_id, source=doc.source, chunk_count=doc.chunk_count))

        doc = store.get_document(doc.doc_id)
        assert result.status == "processed"
        assert doc.status == DocumentStatus.EMBEDDED
        assert doc.embedding_version == "v2"
        assert doc.run == 2
        assert {c.embedding_version for c in store.list_chunks(doc.doc_id)} == {"v2"}


class LaggingStore(InMemoryDocumentStore):
    """Store whose index never catches up."""

    def refresh(self, doc_id: str | None = None) -> None:
        return None


class TestIndexerWorker:
    """Test the Indexer stage."""

    def test_marks_document_indexed(self, pipeline, store, bus) -> None:
        """Should reach INDEXED and emit the completion event."""
        outcome = pipeline.process("s3://bucket/a.pdf")

        doc = store.get_document(outcome.doc_id)
        assert doc.status == DocumentStatus.INDEXED
        assert state_machine.is_forward_only(doc)
        completed = bus.events(Topic.INDEXED)
        assert [e.doc_id for e in completed] == [doc.doc_id]
        assert completed[0].chunk_count == doc.chunk_count

    def test_lagging_index_retried_then_escalated(self, bus) -> None:
        """Should give up with a transient error when chunks never become searchable."""
        store = LaggingStore()
        source = SourceRef.from_uri("s3://bucket/a.pdf")
        doc = state_machine.new_document(
            Document(doc_id=compute_doc_id(source), source=source)
        )
        for status in (DocumentStatus.OCR_DONE, DocumentStatus.CHUNKED):
            doc = state_machine.advance(doc, status, chunk_count=1)
        doc = state_machine.advance(doc, DocumentStatus.EMBEDDED, embedding_version="v1")
        store.upsert_document(doc)
        worker = IndexerWorker(store, bus, retry_policy=FAST_RETRY)

        outcome = worker.handle(
            EmbeddedEvent(doc_id=doc.doc_id, source=source, embedded_count=1, embedding_version="v1")
        )

        assert outcome.status == "failed"
        assert outcome.error_kind == "IndexNotReadyError"
        assert outcome.error_category == ErrorCategory.TRANSIENT_INFRA.value
        assert store.get_document(doc.doc_id).status == DocumentStatus.EMBEDDED

    def test_already_indexed_skips(self, pipeline, store) -> None:
        """Should re-emit the completion event for an INDEXED document."""
        outcome = pipeline.process("s3://bucket/a.pdf")
        doc = store.get_document(outcome.doc_id)

        result = pipeline.container.worker("indexer").handle(
            EmbeddedEvent(doc_id=doc.doc_id, source=doc.source, embedded_count=0, embedding_version="v1")
        )

        assert result.status == "skipped"
