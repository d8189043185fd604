"""
HTTP request and response models.

Exports: QueryRequest, QueryResponse, IngestRequest, IngestResponse, ErrorResponse
"""

from docflow.models.common import ErrorResponse
from docflow.models.ingest import IngestRequest, IngestResponse
from docflow.models.query import QueryRequest, QueryResponse

__all__ = [
    "ErrorResponse",
    "IngestRequest",
    "IngestResponse",
    "QueryRequest",
    "QueryResponse",
]
