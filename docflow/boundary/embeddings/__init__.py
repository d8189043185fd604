"""
Embedding boundary.

Exports: EmbeddingClient, EmbeddingResult, get_embedding_client
"""

from docflow.boundary.embeddings.client import (
    EmbeddingClient,
    EmbeddingResult,
    get_embedding_client,
)

__all__ = ["EmbeddingClient", "EmbeddingResult", "get_embedding_client"]
