"""
Ingest request/response models.

Dependencies: pydantic, docflow.core.pipeline.models
System role: Ingest API contract
"""

from pydantic import BaseModel, Field, field_validator

from docflow.core.pipeline.models.document import DocumentStatus, SourceRef


class IngestRequest(BaseModel):
    """Object to ingest, as a SourceRef or a URI like gcs://bucket/key."""

    source: SourceRef
    trace_id: str | None = Field(default=None, description="Caller trace id")

    @field_validator("source", mode="before")
    @classmethod
    def parse_uri(cls, value):
        if isinstance(value, str):
            try:
                return SourceRef.from_uri(value)
            except ValueError as e:
                raise ValueError(f"Invalid source URI {value!r}: {e}") from e
        return value


class IngestResponse(BaseModel):
    """Result of an ingest request."""

    doc_id: str
    status: DocumentStatus | None = Field(description="Current document status")
    outcome: str = Field(description="processed or skipped")
    trace_id: str | None = None
