"""
Ingest stage.

Validates that the source object exists before computing doc_id and
emitting the first pipeline event. A missing object never creates a
Document; an existing Document is never modified by re-ingestion.

Dependencies: docflow.boundary.object_store
System role: Entry point of the pipeline
"""

import logging

from docflow.boundary.bus.base import TopicBus
from docflow.boundary.object_store.base import ObjectStore
from docflow.boundary.store.base import DocumentStore
from docflow.core.exceptions import ObjectNotFound
from docflow.core.pipeline import state_machine
from docflow.core.pipeline.ids import compute_doc_id
from docflow.core.pipeline.models.document import Document, SourceRef
from docflow.core.pipeline.models.events import IngestEvent, PipelineEvent, Topic
from docflow.core.pipeline.models.results import StageOutcome
from docflow.core.pipeline.notifications import parse_object_notification
from docflow.core.pipeline.retry import RetryPolicy
from docflow.core.pipeline.stages.base import StageResult, StageWorker
from docflow.observability.correlation import new_trace_id

logger = logging.getLogger(__name__)


class IngestWorker(StageWorker):
    """Validate a source object and start its pipeline run."""

    name = "ingest"
    consumes = None
    emits = Topic.INGEST

    def __init__(
        self,
        store: DocumentStore,
        bus: TopicBus,
        object_store: ObjectStore,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """
        Initialize ingest worker.

        Args:
            store: Document store
            bus: Topic bus
            object_store: Source object storage
            retry_policy: Backoff policy
        """
        super().__init__(store, bus, retry_policy)
        self.object_store = object_store

    def ingest(self, source: SourceRef, trace_id: str | None = None) -> StageOutcome:
        """
        Ingest one object reference.

        Args:
            source: Object location
            trace_id: Caller trace id (generated if None)

        Returns:
            StageOutcome: processed, or failed with an error event on pdf-errors
        """
        event = IngestEvent(
            doc_id=compute_doc_id(source),
            source=source,
            trace_id=trace_id or new_trace_id(),
        )
        return self.handle(event)

    def ingest_notification(self, body: str | dict) -> list[StageOutcome]:
        """
        Ingest every object referenced by a storage notification.

        Args:
            body: S3/MinIO/GCS notification payload

        Returns:
            list[StageOutcome]: One outcome per referenced object

        Raises:
            MessageParseError: Unrecognised notification
        """
        return [self.ingest(ref) for ref in parse_object_notification(body)]

    def process(self, event: PipelineEvent) -> StageResult:
        source = event.source
        if not self.call("exists", self.object_store.exists, source):
            raise ObjectNotFound(source.uri)

        existing = self.call("get_document", self.store.get_document, event.doc_id)
        if existing is None:
            doc = state_machine.new_document(
                Document(doc_id=event.doc_id, source=source, trace_id=event.trace_id)
            )
            self.save(doc)
            logger.info(
                f"{__name__}:process - Created document {event.doc_id}",
                extra={"doc_id": event.doc_id, "uri": source.uri},
            )
        else:
            logger.info(
                f"{__name__}:process - Document {event.doc_id} already exists "
                f"({existing.status.value}), re-emitting",
                extra={"doc_id": event.doc_id},
            )
        return StageResult(next_event=event)
