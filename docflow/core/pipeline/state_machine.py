"""
Document status state machine.

RECEIVED -> OCR_DONE -> CHUNKED -> EMBEDDED -> INDEXED, forward only
within a processing run. A failure appends an ERROR entry to the
timeline and records last_error without moving the status, so the
document keeps its last completed stage. Reprocessing a document that
is already past a stage opens a new run at that stage.

All functions return updated copies; callers persist them with a keyed
upsert.

Dependencies: docflow.core.pipeline.models
System role: Shared transition rules for every stage worker
"""

import logging

from docflow.core.exceptions import IllegalTransitionError
from docflow.core.pipeline.models.document import (
    Document,
    DocumentStatus,
    FailureRecord,
    StatusTransition,
    utcnow,
)

logger = logging.getLogger(__name__)

STATUS_ORDER: tuple[DocumentStatus, ...] = (
    DocumentStatus.RECEIVED,
    DocumentStatus.OCR_DONE,
    DocumentStatus.CHUNKED,
    DocumentStatus.EMBEDDED,
    DocumentStatus.INDEXED,
)
_RANK = {status: rank for rank, status in enumerate(STATUS_ORDER)}


def rank(status: DocumentStatus) -> int:
    """Position of a progress status in pipeline order."""
    try:
        return _RANK[DocumentStatus(status)]
    except KeyError as e:
        raise IllegalTransitionError(f"{status} has no pipeline rank") from e


def has_reached(doc: Document, status: DocumentStatus) -> bool:
    """True when the document's status is at or past the given stage."""
    return rank(doc.status) >= rank(status)


def new_document(doc: Document) -> Document:
    """Stamp the initial RECEIVED transition on a freshly built record."""
    now = utcnow()
    return doc.model_copy(
        update={
            "status": DocumentStatus.RECEIVED,
            "run": 1,
            "transitions": [StatusTransition(status=DocumentStatus.RECEIVED, at=now, run=1)],
            "created_at": now,
            "updated_at": now,
        }
    )


def advance(doc: Document, target: DocumentStatus, **fields) -> Document:
    """
    Move a document strictly forward to target within its current run.

    Args:
        doc: Current record
        target: Next status
        **fields: Owned fields written together with the transition

    Returns:
        Document: Updated copy with the transition appended and last_error cleared

    Raises:
        IllegalTransitionError: target is ERROR or not ahead of the current status
    """
    if target == DocumentStatus.ERROR:
        raise IllegalTransitionError("Use record_failure() to record an error")
    if rank(target) <= rank(doc.status):
        raise IllegalTransitionError(
            f"Cannot move {doc.doc_id} from {doc.status.value} to {target.value}",
            details={"doc_id": doc.doc_id, "run": doc.run},
        )
    now = utcnow()
    update = {
        "status": target,
        "transitions": [*doc.transitions, StatusTransition(status=target, at=now, run=doc.run)],
        "last_error": None,
        "updated_at": now,
    }
    update.update(fields)
    return doc.model_copy(update=update)


def reopen(doc: Document, at_status: DocumentStatus, reason: str) -> Document:
    """
    Start a new processing run positioned at at_status.

    Used when a stage must redo work for a document that already moved
    past it (changed bytes, changed chunking policy, new embedding version).

    Args:
        doc: Current record
        at_status: Status the new run resumes from
        reason: Why the document is being reprocessed (logged)

    Returns:
        Document: Updated copy with run incremented
    """
    run = doc.run + 1
    now = utcnow()
    logger.info(
        f"{__name__}:reopen - Reprocessing {doc.doc_id} from {at_status.value} (run {run})",
        extra={"doc_id": doc.doc_id, "previous_status": doc.status.value, "reason": reason},
    )
    return doc.model_copy(
        update={
            "status": at_status,
            "run": run,
            "transitions": [*doc.transitions, StatusTransition(status=at_status, at=now, run=run)],
            "updated_at": now,
        }
    )


def record_failure(doc: Document, failure: FailureRecord) -> Document:
    """
    Append an ERROR entry and set last_error; status is left unchanged.

    Args:
        doc: Current record
        failure: Failure details

    Returns:
        Document: Updated copy
    """
    return doc.model_copy(
        update={
            "transitions": [
                *doc.transitions,
                StatusTransition(status=DocumentStatus.ERROR, at=failure.at, run=doc.run),
            ],
            "last_error": failure,
            "updated_at": failure.at,
        }
    )


def run_transitions(doc: Document, run: int | None = None) -> list[StatusTransition]:
    """Progress transitions (ERROR excluded) of one run, latest run by default."""
    run = doc.run if run is None else run
    return [
        t for t in doc.transitions
        if t.run == run and t.status != DocumentStatus.ERROR
    ]


def is_forward_only(doc: Document) -> bool:
    """Check that every run's progress statuses strictly increase over time."""
    for run in {t.run for t in doc.transitions}:
        ranks = [rank(t.status) for t in run_transitions(doc, run)]
        if any(b <= a for a, b in zip(ranks, ranks[1:])):
            return False
    return True
