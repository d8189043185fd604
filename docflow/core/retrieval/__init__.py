"""
Retrieval over indexed documents.

Exports: RetrievalService, QueryResult, ChunkListing, ChunkView
"""

from docflow.core.retrieval.models import ChunkListing, ChunkView, QueryResult
from docflow.core.retrieval.service import RetrievalService

__all__ = ["ChunkListing", "ChunkView", "QueryResult", "RetrievalService"]
