"""End-to-end pipeline runs over in-memory collaborators."""

from docflow.core.pipeline import state_machine
from docflow.core.pipeline.models.document import DocumentStatus
from docflow.core.pipeline.models.events import Topic
from tests.factories import page_text


def _pages(prefix: str, count: int = 5) -> list[str]:
    """Pages of 30 tokens each, one chunk per page at max 40 tokens."""
    return [f"{prefix} {page_text(i, 29)}" for i in range(1, count + 1)]


class TestFullRun:
    """Test documents moving through every stage."""

    def test_document_reaches_indexed(self, pipeline, store, bus) -> None:
        """Should walk RECEIVED through INDEXED in order and emit one event per stage."""
        outcome = pipeline.process("s3://bucket/a.pdf")

        doc = store.get_document(outcome.doc_id)
        assert doc.status == DocumentStatus.INDEXED
        assert [t.status for t in doc.transitions] == [
            DocumentStatus.RECEIVED,
            DocumentStatus.OCR_DONE,
            DocumentStatus.CHUNKED,
            DocumentStatus.EMBEDDED,
            DocumentStatus.INDEXED,
        ]
        for topic in (Topic.INGEST, Topic.OCR_DONE, Topic.CHUNKED, Topic.EMBEDDED, Topic.INDEXED):
            assert len(bus.events(topic)) == 1
        assert bus.events(Topic.ERRORS) == []
        assert bus.pending() == 0

    def test_trace_id_threads_through_every_event(self, pipeline, bus) -> None:
        """Should carry the ingest trace id and ingest timestamp to the completion event."""
        source = pipeline.put_pdf("s3://bucket/a.pdf")
        pipeline.ingest(source, trace_id="trace-abc")
        pipeline.run()

        first = bus.events(Topic.INGEST)[0]
        last = bus.events(Topic.INDEXED)[0]
        assert last.trace_id == "trace-abc"
        assert last.ingest_ts == first.ingest_ts
        assert last.source == source

    def test_reingest_after_completion_is_idempotent(self, pipeline, store, fake_ocr) -> None:
        """Should short-circuit every stage and leave the INDEXED record unchanged."""
        source = pipeline.put_pdf("gcs://bucket/pdfs/a.pdf")
        first = pipeline.ingest(source)
        pipeline.run()
        indexed = store.get_document(first.doc_id)
        chunk_ids = [c.chunk_id for c in store.list_chunks(first.doc_id)]

        second = pipeline.ingest(source)
        outcomes = pipeline.run()

        assert second.doc_id == first.doc_id
        assert {o.status for o in outcomes} == {"skipped"}
        assert fake_ocr.calls == 1
        doc = store.get_document(first.doc_id)
        assert doc.status == DocumentStatus.INDEXED
        assert doc.run == indexed.run
        assert doc.transitions == indexed.transitions
        assert [c.chunk_id for c in store.list_chunks(first.doc_id)] == chunk_ids

    def test_blank_document_still_indexes(self, pipeline, store, fake_ocr) -> None:
        """Should index a document whose OCR produced no text."""
        fake_ocr.pages = ["", "   "]

        outcome = pipeline.process("s3://bucket/blank.pdf")

        doc = store.get_document(outcome.doc_id)
        assert doc.status == DocumentStatus.INDEXED
        assert doc.chunk_count == 0
        assert store.list_chunks(doc.doc_id) == []

    def test_many_documents_stay_forward_only(self, pipeline, store) -> None:
        """Should keep every document's timeline strictly forward."""
        outcomes = [pipeline.ingest(pipeline.put_pdf(f"s3://bucket/doc-{i}.pdf")) for i in range(6)]
        pipeline.run()

        for outcome in outcomes:
            doc = store.get_document(outcome.doc_id)
            assert doc.status == DocumentStatus.INDEXED
            assert state_machine.is_forward_only(doc)


class TestSearchVisibility:
    """Test that only INDEXED documents are searchable."""

    def test_only_indexed_documents_returned(self, pipeline, store, fake_ocr) -> None:
        """Should exclude chunks of an EMBEDDED document even when its vectors exist."""
        indexed_ids = set()
        for name in ("alpha", "beta"):
            fake_ocr.pages = _pages(name)
            indexed_ids.add(pipeline.process(f"s3://bucket/{name}.pdf").doc_id)

        fake_ocr.pages = _pages("gamma")
        pending = pipeline.ingest(pipeline.put_pdf("s3://bucket/gamma.pdf"))
        for runner in pipeline.runners[:3]:
            runner.drain()
        store.refresh()

        service = pipeline.container.retrieval_service
        results = service.query("refund policy", k=5)

        assert store.get_document(pending.doc_id).status == DocumentStatus.EMBEDDED
        assert sum(len(store.list_chunks(d)) for d in indexed_ids) == 10
        assert len(results) == 5
        assert {r.doc_id for r in results} <= indexed_ids
        assert [r.score for r in results] == sorted((r.score for r in results), reverse=True)

        listing = service.get_chunks(pending.doc_id)
        assert len(listing.chunks) == 5
        assert listing.status == DocumentStatus.EMBEDDED
        assert listing.searchable is False

    def test_filter_restricts_to_one_document(self, pipeline, fake_ocr) -> None:
        """Should return only chunks matching the doc_id filter."""
        doc_ids = []
        for name in ("alpha", "beta"):
            fake_ocr.pages = _pages(name)
            doc_ids.append(pipeline.process(f"s3://bucket/{name}.pdf").doc_id)

        results = pipeline.container.retrieval_service.query(
            "alpha", filters={"doc_id": doc_ids[1], "page_start": {"$gte": 2}}, k=10
        )

        assert len(results) == 4
        assert {r.doc_id for r in results} == {doc_ids[1]}
