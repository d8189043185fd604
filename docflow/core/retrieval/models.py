"""
Retrieval read models.

Shapes returned by the retrieval service: ranked query results and the
by-document chunk listing. Vectors are not returned, only their
provenance.

Dependencies: pydantic
System role: Read-side data structures
"""

from typing import Any

from pydantic import BaseModel, Field

from docflow.core.pipeline.models.chunk import Chunk
from docflow.core.pipeline.models.document import DocumentStatus


class QueryResult(BaseModel):
    """One ranked search hit."""

    chunk_id: str
    doc_id: str
    chunk_text: str
    score: float = Field(description="Similarity score, higher is closer")
    metadata: dict[str, Any] = Field(default_factory=dict)


class ChunkView(BaseModel):
    """Chunk record without its vector."""

    chunk_id: str
    doc_id: str
    page_start: int
    page_end: int
    sequence_index: int
    chunk_text: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    embedding_model: str | None = None
    embedding_dim: int | None = None
    embedding_version: str | None = None

    @classmethod
    def from_chunk(cls, chunk: Chunk) -> "ChunkView":
        return cls(**chunk.model_dump(exclude={"embedding"}))


class ChunkListing(BaseModel):
    """All chunks of one document, with the document status."""

    doc_id: str
    status: DocumentStatus = Field(
        description="Document status; anything before INDEXED is not yet searchable"
    )
    searchable: bool = Field(description="True when the document's chunks appear in queries")
    chunks: list[ChunkView] = Field(default_factory=list)
