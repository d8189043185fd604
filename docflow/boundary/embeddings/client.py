"""
Embedding collaborator.

Wraps any LangChain Embeddings model and reports each vector with the
model id and its actual dimension. Dimension checks against
configuration happen in the Embedder stage, so a misconfigured model
surfaces as EmbeddingDimMismatch instead of a corrupt index.

Dependencies: langchain_core, langchain_google_genai
System role: Vector-from-text function for the Embedder and retrieval
"""

import logging

from langchain_core.embeddings import DeterministicFakeEmbedding, Embeddings
from pydantic import BaseModel, Field

from docflow.configs.pipeline import PipelineSettings
from docflow.core.exceptions import EmbeddingServiceError

logger = logging.getLogger(__name__)


class EmbeddingResult(BaseModel):
    """One embedding with provenance."""

    vector: list[float]
    model_id: str
    dim: int = Field(ge=0)


class EmbeddingClient:
    """Embed text through a LangChain Embeddings model."""

    def __init__(self, embeddings: Embeddings, model_id: str) -> None:
        """
        Initialize client.

        Args:
            embeddings: LangChain embeddings implementation
            model_id: Model identifier recorded as provenance
        """
        self._embeddings = embeddings
        self._model_id = model_id

    @property
    def model_id(self) -> str:
        return self._model_id

    def embed(self, text: str) -> EmbeddingResult:
        """Embed a single passage."""
        return self.embed_many([text])[0]

    def embed_many(self, texts: list[str]) -> list[EmbeddingResult]:
        """
        Embed passages for indexing.

        Args:
            texts: Passages to embed

        Returns:
            list[EmbeddingResult]: One result per input, in order

        Raises:
            EmbeddingServiceError: Provider failure or short response
        """
        if not texts:
            return []
        try:
            vectors = self._embeddings.embed_documents(texts)
        except Exception as e:
            raise EmbeddingServiceError(
                f"Embedding provider failed: {type(e).__name__}",
                details={"model": self._model_id, "error": str(e)[:500], "batch": len(texts)},
            ) from e
        if len(vectors) != len(texts):
            raise EmbeddingServiceError(
                "Embedding provider returned a partial batch",
                details={"expected": len(texts), "received": len(vectors)},
            )
        return [self._result(v) for v in vectors]

    def embed_query(self, text: str) -> EmbeddingResult:
        """
        Embed a search query.

        Raises:
            EmbeddingServiceError: Provider failure
        """
        try:
            vector = self._embeddings.embed_query(text)
        except Exception as e:
            raise EmbeddingServiceError(
                f"Embedding provider failed: {type(e).__name__}",
                details={"model": self._model_id, "error": str(e)[:500]},
            ) from e
        return self._result(vector)

    def _result(self, vector: list[float]) -> EmbeddingResult:
        values = [float(v) for v in vector]
        return EmbeddingResult(vector=values, model_id=self._model_id, dim=len(values))


def get_embedding_client(settings: PipelineSettings) -> EmbeddingClient:
    """
    Create the configured embedding backend.

    Args:
        settings: Pipeline settings

    Returns:
        EmbeddingClient: Google Gemini or deterministic fake embeddings
    """
    if settings.embedding_backend == "fake":
        return EmbeddingClient(
            DeterministicFakeEmbedding(size=settings.embedding_dim),
            model_id=f"fake-{settings.embedding_dim}",
        )

    from docflow.boundary.embeddings.google import GeminiEmbeddings

    return EmbeddingClient(
        GeminiEmbeddings(model=settings.embedding_model, dimension=settings.embedding_dim),
        model_id=settings.embedding_model,
    )
