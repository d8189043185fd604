"""
Stage worker contract.

Every consuming stage follows the same sequence for one event:
precondition (load the document), idempotency check (skip and re-emit
when the deterministic output is already stored), work through the
stage's collaborator, keyed upserts, then exactly one emitted event:
the next stage's event on success or an error event on failure.

Error policy:
- TransientInfraError: retried with bounded backoff, then escalated
- PermanentInputError / OrderingAnomalyError: escalated immediately
  (a missing or lagging document is re-read a bounded number of times
  first, in case the store has not caught up)
- anything else: escalated as an internal error

Escalation publishes an ErrorEvent with attempt incremented and
records the failure on the document without moving its status.
Bus publish failures propagate so the runner leaves the delivery
unacked for redelivery.

Dependencies: docflow.boundary.bus, docflow.boundary.store, tenacity (via retry)
System role: Shared coordinator logic embedded in every stage worker
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
import time
from typing import Callable, ClassVar, TypeVar

from docflow.boundary.bus.base import TopicBus
from docflow.boundary.store.base import DocumentStore
from docflow.core.exceptions import (
    DocflowError,
    ErrorCategory,
    OrderingAnomalyError,
    TransientInfraError,
)
from docflow.core.pipeline import state_machine
from docflow.core.pipeline.models.document import Document, DocumentStatus, FailureRecord
from docflow.core.pipeline.models.events import ErrorEvent, PipelineEvent, Topic
from docflow.core.pipeline.models.results import StageOutcome
from docflow.core.pipeline.retry import RetryPolicy
from docflow.observability.correlation import trace_scope
from docflow.observability.log_utils import (
    event_context,
    log_exception_with_context,
    log_with_context,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ERROR_MESSAGE = 2000


@dataclass
class StageResult:
    """What a stage produced for one event."""

    next_event: PipelineEvent
    skipped: bool = False


class StageWorker(ABC):
    """Base class for stage workers."""

    name: ClassVar[str]
    consumes: ClassVar[Topic | None] = None
    emits: ClassVar[Topic]

    def __init__(
        self,
        store: DocumentStore,
        bus: TopicBus,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """
        Initialize shared dependencies.

        Args:
            store: Document store
            bus: Topic bus for emitted events
            retry_policy: Backoff policy for collaborator and store calls
        """
        self.store = store
        self.bus = bus
        self.retry_policy = retry_policy or RetryPolicy()

    # Contract

    @abstractmethod
    def process(self, event: PipelineEvent) -> StageResult:
        """
        Run precondition, idempotency check, work and writes for one event.

        Raises:
            DocflowError: Any categorized failure
        """

    def handle(self, event: PipelineEvent) -> StageOutcome:
        """
        Handle one consumed event and emit exactly one follow-up event.

        Args:
            event: Event from the consumed topic

        Returns:
            StageOutcome: processed, skipped or failed

        Raises:
            BusUnavailableError: Follow-up event could not be published
        """
        start = time.perf_counter()
        with trace_scope(event.trace_id):
            log_with_context(
                logger, logging.INFO,
                f"{__name__}:handle - {self.name} received event",
                stage=self.name, **event_context(event),
            )
            try:
                result = self.process(event)
            except DocflowError as e:
                return self.escalate(event, e, start)
            except Exception as e:
                log_exception_with_context(
                    logger,
                    f"{__name__}:handle - Unexpected error in {self.name}",
                    e,
                    doc_id=event.doc_id,
                )
                return self.escalate(event, e, start)

            self.bus.publish(self.emits, result.next_event)
            outcome = StageOutcome(
                doc_id=event.doc_id,
                stage=self.name,
                status="skipped" if result.skipped else "processed",
                emitted_topic=self.emits,
                attempt=result.next_event.attempt,
                processing_time_ms=(time.perf_counter() - start) * 1000,
            )
            log_with_context(
                logger, logging.INFO,
                f"{__name__}:handle - {self.name} {outcome.status} in "
                f"{outcome.processing_time_ms:.2f}ms",
                doc_id=event.doc_id, stage=self.name, emitted=self.emits.value,
            )
            return outcome

    def escalate(self, event: PipelineEvent, exc: Exception, start: float) -> StageOutcome:
        """
        Publish an error event and record the failure on the document.

        Args:
            event: Event that failed
            exc: Failure
            start: perf_counter value when handling started

        Returns:
            StageOutcome: failed outcome
        """
        if isinstance(exc, DocflowError):
            kind, category = exc.kind, exc.category
        else:
            kind, category = type(exc).__name__, ErrorCategory.INTERNAL
        attempt = event.attempt + 1
        message = str(exc)[:MAX_ERROR_MESSAGE]

        self._record_failure(event.doc_id, kind, category, message, attempt)
        error_event = event.derive(
            ErrorEvent,
            attempt=attempt,
            failed_stage=self.name,
            error_kind=kind,
            error_category=category,
            error_message=message,
        )
        self.bus.publish(Topic.ERRORS, error_event)

        logger.error(
            f"{__name__}:escalate - {self.name} failed for {event.doc_id}: {kind}",
            extra={
                "doc_id": event.doc_id,
                "stage": self.name,
                "error_kind": kind,
                "error_category": category.value,
                "attempt": attempt,
            },
        )
        return StageOutcome(
            doc_id=event.doc_id,
            stage=self.name,
            status="failed",
            emitted_topic=Topic.ERRORS,
            attempt=attempt,
            error_kind=kind,
            error_category=category.value,
            error_message=message,
            processing_time_ms=(time.perf_counter() - start) * 1000,
        )

    def _record_failure(
        self,
        doc_id: str,
        kind: str,
        category: ErrorCategory,
        message: str,
        attempt: int,
    ) -> None:
        try:
            doc = self.store.get_document(doc_id)
            if doc is None:
                return
            failure = FailureRecord(
                stage=self.name,
                error_kind=kind,
                category=category.value,
                message=message,
                attempt=attempt,
            )
            self.store.upsert_document(state_machine.record_failure(doc, failure))
        except DocflowError as e:
            # The error event still carries everything needed to re-drive
            logger.warning(
                f"{__name__}:_record_failure - Could not record failure on {doc_id}: {e}",
                extra={"doc_id": doc_id},
            )

    # Helpers for subclasses

    def call(self, operation: str, fn: Callable[..., T], *args, **kwargs) -> T:
        """Invoke a collaborator or store call under the retry policy."""
        return self.retry_policy.call(fn, *args, operation=f"{self.name}.{operation}", **kwargs)

    def load_document(self, event: PipelineEvent, required: DocumentStatus) -> Document:
        """
        Fetch the event's document and check the predecessor stage completed.

        Args:
            event: Consumed event
            required: Status the document must have reached

        Returns:
            Document: Current record

        Raises:
            OrderingAnomalyError: Document missing or behind required
                after bounded re-reads
        """
        def _load() -> Document:
            doc = self.store.get_document(event.doc_id)
            if doc is None:
                raise OrderingAnomalyError(
                    f"{self.name} received an event for unknown document",
                    doc_id=event.doc_id,
                )
            if not state_machine.has_reached(doc, required):
                raise OrderingAnomalyError(
                    f"{self.name} requires {required.value}, document is {doc.status.value}",
                    doc_id=event.doc_id,
                    details={"status": doc.status.value, "required": required.value},
                )
            return doc

        return self.retry_policy.call(
            _load,
            operation=f"{self.name}.load_document",
            retry_on=(TransientInfraError, OrderingAnomalyError),
        )

    def save(self, doc: Document) -> Document:
        """Upsert a document record under the retry policy."""
        self.call("upsert_document", self.store.upsert_document, doc)
        return doc
