"""
Chunk domain model for document processing pipeline.

Represents a retrieval-sized span of a document's OCR text with a
deterministic ID, page span, metadata and (after embedding) a vector
with its provenance.

Dependencies: pydantic
System role: Data structure for document chunks in the pipeline
"""

from typing import Any

from pydantic import BaseModel, Field, model_validator


class Chunk(BaseModel):
    """Document chunk with optional embedding vector."""

    chunk_id: str = Field(description="Deterministic chunk identifier")
    doc_id: str = Field(description="Owning document id (lookup key)")
    page_start: int = Field(ge=1, description="First page of the span (1-based)")
    page_end: int = Field(ge=1, description="Last page of the span (1-based)")
    sequence_index: int = Field(ge=0, description="Position in document order")
    chunk_text: str = Field(description="Chunk text content")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Chunk metadata (layout types, section title, table flag, overlap)",
    )
    embedding: list[float] | None = Field(default=None, description="Embedding vector")
    embedding_model: str | None = Field(default=None)
    embedding_dim: int | None = Field(default=None)
    embedding_version: str | None = Field(default=None)

    @model_validator(mode="after")
    def validate_chunk(self) -> "Chunk":
        """Check page span ordering and embedding provenance."""
        if self.page_start > self.page_end:
            raise ValueError(
                f"page_start ({self.page_start}) must be <= page_end ({self.page_end})"
            )
        if self.embedding is not None:
            if not (self.embedding_model and self.embedding_dim and self.embedding_version):
                raise ValueError(
                    "embedding_model, embedding_dim and embedding_version are "
                    "required when embedding is present"
                )
            if self.embedding_dim != len(self.embedding):
                raise ValueError(
                    f"embedding_dim ({self.embedding_dim}) does not match "
                    f"vector length ({len(self.embedding)})"
                )
        return self

    def is_embedded(self, version: str) -> bool:
        """True when the chunk carries a vector for the given embedding version."""
        return self.embedding is not None and self.embedding_version == version
