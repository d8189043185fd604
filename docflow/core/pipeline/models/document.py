"""
Document domain model for the processing pipeline.

One Document record exists per ingested PDF, keyed by a doc_id derived
from the source location. Stages mutate the record by keyed upsert only.

Dependencies: pydantic
System role: System-of-record shape for pipeline progress
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

Provider = Literal["gcs", "s3", "minio"]


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class DocumentStatus(str, Enum):
    """Pipeline progress of a document."""

    RECEIVED = "RECEIVED"
    OCR_DONE = "OCR_DONE"
    CHUNKED = "CHUNKED"
    EMBEDDED = "EMBEDDED"
    INDEXED = "INDEXED"
    ERROR = "ERROR"


class SourceRef(BaseModel):
    """Location of the source PDF in object storage."""

    provider: Provider = Field(description="Object storage provider")
    bucket: str = Field(min_length=1, description="Bucket name")
    key: str = Field(min_length=1, description="Object key")
    version: str | None = Field(default=None, description="Object version / generation")

    @property
    def uri(self) -> str:
        """Provider URI, e.g. gcs://bucket/pdfs/a.pdf."""
        uri = f"{self.provider}://{self.bucket}/{self.key}"
        if self.version:
            uri = f"{uri}?version={self.version}"
        return uri

    @classmethod
    def from_uri(cls, uri: str) -> "SourceRef":
        """
        Parse a provider URI into a SourceRef.

        Args:
            uri: URI such as s3://bucket/key or gcs://bucket/key?version=3

        Returns:
            SourceRef: Parsed reference

        Raises:
            ValueError: When the URI is not provider://bucket/key
        """
        scheme, sep, rest = uri.partition("://")
        if not sep:
            raise ValueError(f"Not a provider URI: {uri}")
        if scheme == "gs":
            scheme = "gcs"
        rest, _, query = rest.partition("?")
        bucket, _, key = rest.partition("/")
        version = None
        if query.startswith("version="):
            version = query[len("version="):] or None
        return cls(provider=scheme, bucket=bucket, key=key, version=version)


class StatusTransition(BaseModel):
    """One append-only entry of a document's status timeline."""

    status: DocumentStatus
    at: datetime = Field(default_factory=utcnow)
    run: int = Field(default=1, ge=1, description="Processing generation")


class FailureRecord(BaseModel):
    """Most recent stage failure of a document."""

    stage: str
    error_kind: str
    category: str
    message: str
    attempt: int = Field(ge=0)
    at: datetime = Field(default_factory=utcnow)


class Document(BaseModel):
    """Pipeline record for a single source PDF."""

    doc_id: str = Field(description="Deterministic id derived from the source location")
    source: SourceRef
    status: DocumentStatus = Field(default=DocumentStatus.RECEIVED)
    run: int = Field(default=1, ge=1, description="Current processing generation")
    transitions: list[StatusTransition] = Field(
        default_factory=list,
        description="Append-only status timeline",
    )
    content_hash: str | None = Field(default=None, description="sha256 of the PDF bytes")
    page_count: int | None = Field(default=None, ge=0)
    chunk_count: int | None = Field(default=None, ge=0)
    embedding_version: str | None = Field(default=None)
    last_error: FailureRecord | None = Field(default=None)
    trace_id: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
