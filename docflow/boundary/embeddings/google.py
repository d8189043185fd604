"""
Gemini embeddings pinned to one output dimension.

Gemini embedding models return 3072-d vectors unless every request asks
for a smaller size. The index is created for a single dimension, so the
requested size is fixed at construction and sent with each call, along
with the retrieval task type matching the call site (passages vs queries).

Dependencies: langchain_google_genai
System role: Production embedding backend
"""

import logging

from langchain_google_genai import GoogleGenerativeAIEmbeddings

logger = logging.getLogger(__name__)

PASSAGE_TASK = "RETRIEVAL_DOCUMENT"
QUERY_TASK = "RETRIEVAL_QUERY"


class GeminiEmbeddings(GoogleGenerativeAIEmbeddings):
    """GoogleGenerativeAIEmbeddings that always requests `dimension` floats."""

    _dimension: int = 768

    def __init__(self, model: str, dimension: int, **kwargs) -> None:
        super().__init__(model=model, **kwargs)
        self._dimension = dimension
        logger.info(f"{__name__}:__init__ - Gemini embeddings {model} at {dimension} dims")

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed_documents(self, texts: list[str], **kwargs) -> list[list[float]]:
        kwargs.setdefault("task_type", PASSAGE_TASK)
        kwargs.setdefault("output_dimensionality", self._dimension)
        return super().embed_documents(texts, **kwargs)

    def embed_query(self, text: str, **kwargs) -> list[float]:
        kwargs.setdefault("task_type", QUERY_TASK)
        kwargs.setdefault("output_dimensionality", self._dimension)
        return super().embed_query(text, **kwargs)
