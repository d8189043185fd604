"""
Pipeline event schemas.

Typed messages carried on the bus topics. Every event threads doc_id,
the original source reference, ingest timestamp, trace id and attempt
count; stage events add their stage-specific payload.

Dependencies: pydantic
System role: Wire format between stage workers
"""

from datetime import datetime
from enum import Enum
import uuid

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from docflow.core.exceptions import ErrorCategory, MessageParseError
from docflow.core.pipeline.models.document import SourceRef, utcnow


class Topic(str, Enum):
    """Bus topics, in pipeline order."""

    INGEST = "pdf-ingest"
    OCR_DONE = "pdf-ocr-done"
    CHUNKED = "pdf-chunked"
    EMBEDDED = "pdf-embedded"
    INDEXED = "pdf-indexed"
    ERRORS = "pdf-errors"


class PipelineEvent(BaseModel):
    """Fields common to every pipeline event."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    doc_id: str
    source: SourceRef
    ingest_ts: datetime = Field(default_factory=utcnow)
    trace_id: str | None = None
    attempt: int = Field(default=0, ge=0)

    def derive(self, model: type["PipelineEvent"], **fields) -> "PipelineEvent":
        """
        Build the next event for this document, threading the shared fields.

        Args:
            model: Event class to build
            **fields: Stage payload and overrides (e.g. attempt)

        Returns:
            PipelineEvent: New event with a fresh event_id
        """
        base = {
            "doc_id": self.doc_id,
            "source": self.source,
            "ingest_ts": self.ingest_ts,
            "trace_id": self.trace_id,
            "attempt": self.attempt,
        }
        base.update(fields)
        return model(**base)


class IngestEvent(PipelineEvent):
    """Published on pdf-ingest once the source object is validated."""


class OcrDoneEvent(PipelineEvent):
    """Published on pdf-ocr-done."""

    page_count: int = Field(ge=0)
    content_hash: str


class ChunkedEvent(PipelineEvent):
    """Published on pdf-chunked."""

    chunk_count: int = Field(ge=0)


class EmbeddedEvent(PipelineEvent):
    """Published on pdf-embedded."""

    embedded_count: int = Field(ge=0, description="Chunks embedded by this pass")
    embedding_version: str


class IndexedEvent(PipelineEvent):
    """Published on pdf-indexed, the final completion event."""

    chunk_count: int = Field(ge=0)


class ErrorEvent(PipelineEvent):
    """Published on pdf-errors when a stage gives up on a document."""

    failed_stage: str
    error_kind: str
    error_category: ErrorCategory
    error_message: str


EVENT_MODELS: dict[Topic, type[PipelineEvent]] = {
    Topic.INGEST: IngestEvent,
    Topic.OCR_DONE: OcrDoneEvent,
    Topic.CHUNKED: ChunkedEvent,
    Topic.EMBEDDED: EmbeddedEvent,
    Topic.INDEXED: IndexedEvent,
    Topic.ERRORS: ErrorEvent,
}


def encode_event(event: PipelineEvent) -> str:
    """Serialize an event to its JSON wire form."""
    return event.model_dump_json()


def decode_event(topic: Topic, payload: str | bytes) -> PipelineEvent:
    """
    Parse a JSON message body into the event model of its topic.

    Args:
        topic: Topic the message was consumed from
        payload: JSON message body

    Returns:
        PipelineEvent: Validated event

    Raises:
        MessageParseError: Invalid JSON or schema
    """
    model = EVENT_MODELS[Topic(topic)]
    try:
        return model.model_validate_json(payload)
    except ValidationError as e:
        first = e.errors(include_url=False)[0]
        raise MessageParseError(
            f"Invalid {Topic(topic).value} message: {first['msg']}",
            details={
                "topic": Topic(topic).value,
                "field": ".".join(str(p) for p in first["loc"]),
                "error_count": e.error_count(),
            },
        ) from e
