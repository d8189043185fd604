"""
OCR stage.

Consumes pdf-ingest, reads the PDF, calls the OCR collaborator, stores
the OCR artifact keyed by doc_id and moves the document to OCR_DONE.
As the first consuming stage it creates the Document when an external
producer published the ingest event directly.

Short-circuits when the document already passed OCR for identical bytes
and the artifact is stored; changed bytes reopen the document.

Dependencies: docflow.boundary.object_store, docflow.boundary.ocr
System role: Second stage of the pipeline
"""

import logging

from docflow.boundary.bus.base import TopicBus
from docflow.boundary.object_store.base import ObjectStore
from docflow.boundary.ocr.base import OcrClient
from docflow.boundary.store.base import DocumentStore
from docflow.core.exceptions import MessageParseError
from docflow.core.pipeline import state_machine
from docflow.core.pipeline.ids import compute_doc_id, content_hash
from docflow.core.pipeline.models.document import Document, DocumentStatus
from docflow.core.pipeline.models.events import OcrDoneEvent, PipelineEvent, Topic
from docflow.core.pipeline.retry import RetryPolicy
from docflow.core.pipeline.stages.base import StageResult, StageWorker

logger = logging.getLogger(__name__)


class OcrWorker(StageWorker):
    """Extract page text for an ingested document."""

    name = "ocr"
    consumes = Topic.INGEST
    emits = Topic.OCR_DONE

    def __init__(
        self,
        store: DocumentStore,
        bus: TopicBus,
        object_store: ObjectStore,
        ocr_client: OcrClient,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """
        Initialize OCR worker.

        Args:
            store: Document store
            bus: Topic bus
            object_store: Source object storage
            ocr_client: OCR collaborator
            retry_policy: Backoff policy
        """
        super().__init__(store, bus, retry_policy)
        self.object_store = object_store
        self.ocr_client = ocr_client

    def process(self, event: PipelineEvent) -> StageResult:
        if compute_doc_id(event.source) != event.doc_id:
            raise MessageParseError(
                "doc_id does not match the source reference",
                details={"doc_id": event.doc_id, "uri": event.source.uri},
            )

        doc = self.call("get_document", self.store.get_document, event.doc_id)
        if doc is None:
            doc = self.save(state_machine.new_document(
                Document(doc_id=event.doc_id, source=event.source, trace_id=event.trace_id)
            ))

        data = self.call("read", self.object_store.read, event.source)
        digest = content_hash(data)

        if state_machine.has_reached(doc, DocumentStatus.OCR_DONE) and doc.content_hash == digest:
            artifact = self.call("get_ocr_artifact", self.store.get_ocr_artifact, doc.doc_id)
            if artifact is not None:
                logger.info(
                    f"{__name__}:process - {doc.doc_id} already OCR'd with identical bytes, skipping",
                    extra={"doc_id": doc.doc_id, "status": doc.status.value},
                )
                return StageResult(
                    next_event=event.derive(
                        OcrDoneEvent,
                        page_count=artifact.page_count,
                        content_hash=digest,
                    ),
                    skipped=True,
                )

        ocr = self.call("ocr", self.ocr_client.ocr, data)
        self.call("put_ocr_artifact", self.store.put_ocr_artifact, doc.doc_id, ocr)

        if state_machine.has_reached(doc, DocumentStatus.OCR_DONE):
            reason = "content changed" if doc.content_hash != digest else "OCR artifact missing"
            doc = state_machine.reopen(doc, DocumentStatus.RECEIVED, reason=reason)
        doc = state_machine.advance(
            doc,
            DocumentStatus.OCR_DONE,
            content_hash=digest,
            page_count=ocr.page_count,
            trace_id=event.trace_id or doc.trace_id,
        )
        self.save(doc)

        logger.info(
            f"{__name__}:process - OCR complete for {doc.doc_id}",
            extra={"doc_id": doc.doc_id, "pages": ocr.page_count, "bytes": len(data)},
        )
        return StageResult(
            next_event=event.derive(OcrDoneEvent, page_count=ocr.page_count, content_hash=digest)
        )
