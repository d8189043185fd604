"""Tests for the stage runner loop."""

import threading
import time

import pytest

from docflow.boundary.bus.base import partition_for
from docflow.boundary.bus.memory import InMemoryTopicBus
from docflow.core.exceptions import BusUnavailableError
from docflow.core.pipeline.models.document import DocumentStatus, SourceRef
from docflow.core.pipeline.models.events import IngestEvent, Topic
from docflow.core.pipeline.runner import StageRunner
from docflow.core.pipeline.stages import IndexerWorker, IngestWorker, OcrWorker
from tests.factories import FAST_RETRY


class FlakyBus(InMemoryTopicBus):
    """Bus that fails the first publishes to one topic."""

    def __init__(self, fail_topic: Topic, failures: int = 1, partitions: int = 2) -> None:
        super().__init__(partitions=partitions)
        self.fail_topic = fail_topic
        self.failures = failures

    def publish(self, topic, event) -> None:
        if Topic(topic) == self.fail_topic and self.failures > 0:
            self.failures -= 1
            raise BusUnavailableError("bus down")
        super().publish(topic, event)


@pytest.fixture
def flaky_bus() -> FlakyBus:
    return FlakyBus(Topic.OCR_DONE)


@pytest.fixture
def ocr_runner(flaky_bus, store, object_store, fake_ocr) -> StageRunner:
    worker = OcrWorker(store, flaky_bus, object_store, fake_ocr, retry_policy=FAST_RETRY)
    return StageRunner(worker, flaky_bus, failure_backoff=0)


def _ingest(bus, store, object_store, uri: str = "s3://bucket/a.pdf"):
    source = SourceRef.from_uri(uri)
    object_store.put(source, b"%PDF-1.4 test")
    return IngestWorker(store, bus, object_store, retry_policy=FAST_RETRY).ingest(source)


class TestStageRunner:
    """Test StageRunner delivery handling."""

    def test_requires_consumed_topic(self, bus, store, object_store) -> None:
        """Should reject a worker that does not consume a topic."""
        with pytest.raises(ValueError):
            StageRunner(IngestWorker(store, bus, object_store), bus)

    def test_publish_failure_nacks_and_redelivers(
        self, flaky_bus, ocr_runner, store, object_store, fake_ocr
    ) -> None:
        """Should leave the event pending after a failed publish and finish on redelivery."""
        outcome = _ingest(flaky_bus, store, object_store)

        first = ocr_runner.drain()

        assert first == []
        assert ocr_runner.nacked == 1
        assert flaky_bus.pending(Topic.INGEST) == 1
        assert flaky_bus.events(Topic.OCR_DONE) == []

        second = ocr_runner.drain()

        assert [o.status for o in second] == ["skipped"]
        assert fake_ocr.calls == 1
        assert flaky_bus.pending(Topic.INGEST) == 0
        assert len(flaky_bus.events(Topic.OCR_DONE)) == 1
        assert store.get_document(outcome.doc_id).status == DocumentStatus.OCR_DONE

    def test_unreadable_message_dropped(self, bus, store) -> None:
        """Should ack and skip a message that does not match the topic schema."""
        runner = StageRunner(IndexerWorker(store, bus, retry_policy=FAST_RETRY), bus, failure_backoff=0)
        # An ingest event lacks the fields of pdf-embedded
        bus.publish(
            Topic.EMBEDDED,
            IngestEvent(doc_id="doc-1", source=SourceRef.from_uri("s3://bucket/a.pdf")),
        )

        assert runner.drain() == []
        assert bus.pending(Topic.EMBEDDED) == 0

    def test_drain_respects_max_events(self, bus, store, object_store, fake_ocr) -> None:
        """Should stop after max_events outcomes."""
        for i in range(3):
            _ingest(bus, store, object_store, f"s3://bucket/{i}.pdf")
        worker = OcrWorker(store, bus, object_store, fake_ocr, retry_policy=FAST_RETRY)

        outcomes = StageRunner(worker, bus, failure_backoff=0).drain(max_events=2)

        assert len(outcomes) == 2
        assert bus.pending(Topic.INGEST) == 1

    def test_assigned_partitions_cover_all(self, store, object_store, fake_ocr) -> None:
        """Should spread partitions across consumer slots without gaps."""
        bus = InMemoryTopicBus(partitions=5)
        worker = OcrWorker(store, bus, object_store, fake_ocr)
        runner = StageRunner(worker, bus, concurrency=2)

        assigned = runner.assigned_partitions(0) + runner.assigned_partitions(1)

        assert sorted(assigned) == [0, 1, 2, 3, 4]

    def test_run_until_stopped(self, bus, store, object_store, fake_ocr) -> None:
        """Should consume in background threads and return once stopped."""
        worker = OcrWorker(store, bus, object_store, fake_ocr, retry_policy=FAST_RETRY)
        runner = StageRunner(worker, bus, poll_timeout=0.05, failure_backoff=0)
        thread = threading.Thread(target=runner.run)
        thread.start()
        try:
            outcome = _ingest(bus, store, object_store)
            deadline = time.monotonic() + 5
            while time.monotonic() < deadline:
                doc = store.get_document(outcome.doc_id)
                if doc and doc.status == DocumentStatus.OCR_DONE:
                    break
                time.sleep(0.01)
        finally:
            runner.stop()
            thread.join(timeout=5)

        assert not thread.is_alive()
        assert runner.stopped
        assert store.get_document(outcome.doc_id).status == DocumentStatus.OCR_DONE


class FailingAckBus(InMemoryTopicBus):
    """Bus whose first acks fail with a given error."""

    def __init__(self, error: Exception, failures: int = 1, partitions: int = 2) -> None:
        super().__init__(partitions=partitions)
        self.error = error
        self.failures = failures
        self.ack_calls = 0

    def ack(self, delivery) -> None:
        self.ack_calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise self.error
        super().ack(delivery)


class TestAckFailures:
    """Test that ack failures never stop a consumer."""

    def test_unreadable_message_ack_failure(self, store) -> None:
        """Should log a failed ack of an unreadable message instead of raising."""
        bus = FailingAckBus(BusUnavailableError("ack down"))
        runner = StageRunner(IndexerWorker(store, bus, retry_policy=FAST_RETRY), bus, failure_backoff=0)
        bus.publish(
            Topic.EMBEDDED,
            IngestEvent(doc_id="doc-1", source=SourceRef.from_uri("s3://bucket/a.pdf")),
        )
        (delivery,) = bus.poll(Topic.EMBEDDED, partition_for("doc-1", bus.partitions))

        assert runner.process_delivery(delivery) is None
        assert bus.ack_calls == 1

    def test_processed_message_ack_failure(self, store, object_store, fake_ocr) -> None:
        """Should return the outcome when the ack after handling fails."""
        bus = FailingAckBus(BusUnavailableError("ack down"))
        worker = OcrWorker(store, bus, object_store, fake_ocr, retry_policy=FAST_RETRY)
        outcome = _ingest(bus, store, object_store)
        (delivery,) = bus.poll(Topic.INGEST, partition_for(outcome.doc_id, bus.partitions))

        result = StageRunner(worker, bus, failure_backoff=0).process_delivery(delivery)

        assert result.status == "processed"

    def test_consumer_survives_unexpected_ack_error(self, store, object_store, fake_ocr) -> None:
        """Should keep consuming and redeliver after an unexpected ack error."""
        bus = FailingAckBus(RuntimeError("socket closed"))
        worker = OcrWorker(store, bus, object_store, fake_ocr, retry_policy=FAST_RETRY)
        runner = StageRunner(worker, bus, poll_timeout=0.05, failure_backoff=0)
        thread = threading.Thread(target=runner.run)
        thread.start()
        try:
            outcome = _ingest(bus, store, object_store)
            deadline = time.monotonic() + 5
            while time.monotonic() < deadline and bus.pending(Topic.INGEST):
                time.sleep(0.01)
        finally:
            runner.stop()
            thread.join(timeout=5)

        assert not thread.is_alive()
        assert bus.pending(Topic.INGEST) == 0
        assert bus.ack_calls == 2
        assert fake_ocr.calls == 1
        assert store.get_document(outcome.doc_id).status == DocumentStatus.OCR_DONE
