"""
Query request/response models.

Dependencies: pydantic, docflow.core.retrieval
System role: Search API contract
"""

from typing import Any

from pydantic import BaseModel, Field

from docflow.core.retrieval.models import QueryResult


class QueryRequest(BaseModel):
    """Text query with optional metadata filters."""

    text: str = Field(min_length=1, description="Free-text query")
    filters: dict[str, Any] | None = Field(
        default=None,
        description='Metadata filters, e.g. {"page_start": {"$gte": 2}}',
    )
    k: int | None = Field(default=None, ge=1, description="Number of results")


class QueryResponse(BaseModel):
    """Ranked query results."""

    results: list[QueryResult]
    count: int
    k: int
