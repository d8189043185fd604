"""Tests for the document status state machine."""

import pytest

from docflow.core.exceptions import ErrorCategory, IllegalTransitionError
from docflow.core.pipeline import state_machine
from docflow.core.pipeline.models.document import (
    Document,
    DocumentStatus,
    FailureRecord,
    SourceRef,
)


@pytest.fixture
def doc() -> Document:
    return state_machine.new_document(
        Document(doc_id="doc-1", source=SourceRef.from_uri("s3://bucket/a.pdf"))
    )


def _failure(stage: str = "ocr") -> FailureRecord:
    return FailureRecord(
        stage=stage,
        error_kind="OcrServiceError",
        category=ErrorCategory.TRANSIENT_INFRA.value,
        message="boom",
        attempt=1,
    )


class TestAdvance:
    """Test forward transitions."""

    def test_new_document_is_received(self, doc) -> None:
        """Should start at RECEIVED in run 1 with one transition."""
        assert doc.status == DocumentStatus.RECEIVED
        assert doc.run == 1
        assert [t.status for t in doc.transitions] == [DocumentStatus.RECEIVED]

    def test_advance_appends_transition_and_fields(self, doc) -> None:
        """Should move forward, append a transition and write owned fields."""
        updated = state_machine.advance(doc, DocumentStatus.OCR_DONE, page_count=3)

        assert updated.status == DocumentStatus.OCR_DONE
        assert updated.page_count == 3
        assert [t.status for t in updated.transitions] == [
            DocumentStatus.RECEIVED,
            DocumentStatus.OCR_DONE,
        ]
        # Input is not mutated
        assert doc.status == DocumentStatus.RECEIVED

    def test_backward_or_same_rejected(self, doc) -> None:
        """Should reject moves that are not strictly forward."""
        chunked = state_machine.advance(
            state_machine.advance(doc, DocumentStatus.OCR_DONE), DocumentStatus.CHUNKED
        )

        with pytest.raises(IllegalTransitionError):
            state_machine.advance(chunked, DocumentStatus.OCR_DONE)
        with pytest.raises(IllegalTransitionError):
            state_machine.advance(chunked, DocumentStatus.CHUNKED)

    def test_error_is_not_a_target(self, doc) -> None:
        """Should refuse ERROR through advance()."""
        with pytest.raises(IllegalTransitionError):
            state_machine.advance(doc, DocumentStatus.ERROR)

    def test_advance_clears_last_error(self, doc) -> None:
        """Should clear last_error on the next successful transition."""
        failed = state_machine.record_failure(doc, _failure())
        assert failed.last_error is not None

        recovered = state_machine.advance(failed, DocumentStatus.OCR_DONE)
        assert recovered.last_error is None


class TestFailuresAndRuns:
    """Test failure recording and reprocessing runs."""

    def test_record_failure_keeps_status(self, doc) -> None:
        """Should append ERROR without moving the status."""
        chunked = state_machine.advance(
            state_machine.advance(doc, DocumentStatus.OCR_DONE), DocumentStatus.CHUNKED
        )
        failed = state_machine.record_failure(chunked, _failure("embedder"))

        assert failed.status == DocumentStatus.CHUNKED
        assert failed.transitions[-1].status == DocumentStatus.ERROR
        assert failed.last_error.stage == "embedder"
        assert state_machine.is_forward_only(failed)

    def test_reopen_starts_new_run(self, doc) -> None:
        """Should bump the run and position the document at the given status."""
        indexed = doc
        for status in (
            DocumentStatus.OCR_DONE,
            DocumentStatus.CHUNKED,
            DocumentStatus.EMBEDDED,
            DocumentStatus.INDEXED,
        ):
            indexed = state_machine.advance(indexed, status)

        reopened = state_machine.reopen(indexed, DocumentStatus.CHUNKED, reason="new version")
        again = state_machine.advance(reopened, DocumentStatus.EMBEDDED)

        assert reopened.run == 2
        assert again.status == DocumentStatus.EMBEDDED
        assert [t.status for t in state_machine.run_transitions(again)] == [
            DocumentStatus.CHUNKED,
            DocumentStatus.EMBEDDED,
        ]
        assert state_machine.is_forward_only(again)

    def test_is_forward_only_detects_regression(self, doc) -> None:
        """Should flag a run whose statuses go backwards."""
        ocr_done = state_machine.advance(doc, DocumentStatus.OCR_DONE)
        broken = ocr_done.model_copy(
            update={"transitions": [*ocr_done.transitions, doc.transitions[0]]}
        )

        assert not state_machine.is_forward_only(broken)

    def test_has_reached(self, doc) -> None:
        """Should compare statuses in pipeline order."""
        ocr_done = state_machine.advance(doc, DocumentStatus.OCR_DONE)

        assert state_machine.has_reached(ocr_done, DocumentStatus.RECEIVED)
        assert state_machine.has_reached(ocr_done, DocumentStatus.OCR_DONE)
        assert not state_machine.has_reached(ocr_done, DocumentStatus.CHUNKED)
