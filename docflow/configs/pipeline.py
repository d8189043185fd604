"""
Configuration settings for the document processing pipeline.

Provides environment-based configuration for OCR, chunking, embedding
and the shared retry policy of every stage worker.

Dependencies: pydantic, pydantic_settings
System role: Centralized pipeline configuration
"""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    """Settings for the stage workers."""

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # OCR settings
    ocr_backend: Literal["http", "pypdf"] = Field(
        default="http",
        description="OCR backend: 'http' model-serving endpoint or 'pypdf' text layer",
    )
    ocr_endpoint: str = Field(
        default="http://localhost:8001/v1/ocr",
        description="OCR service URL accepting PDF bytes",
    )
    ocr_timeout: float = Field(default=120.0, description="OCR request timeout in seconds")

    # Chunking settings
    chunk_max_size: int = Field(
        default=1000,
        gt=0,
        description="Maximum chunk size in the configured unit",
    )
    chunk_overlap: int = Field(
        default=200,
        ge=0,
        description="Overlap between consecutive chunks in the configured unit",
    )
    chunk_unit: Literal["chars", "tokens"] = Field(
        default="chars",
        description="Unit of max_size and overlap",
    )
    chunk_page_aware: bool = Field(
        default=True,
        description="Keep chunks within page groups instead of the whole text",
    )
    chunk_min_size: int = Field(
        default=50,
        ge=0,
        description="Pages shorter than this are merged with their neighbour",
    )

    # Embedding settings
    embedding_backend: Literal["google", "fake"] = Field(
        default="google",
        description="Embedding backend: 'google' Gemini or 'fake' deterministic",
    )
    embedding_model: str = Field(
        default="models/gemini-embedding-001",
        description="Embedding model ID",
    )
    embedding_dim: int = Field(
        default=768,
        gt=0,
        description="Expected embedding dimension",
    )
    embedding_version: str = Field(
        default="v1",
        description="Embedding version tag; changing it re-embeds every chunk",
    )
    embedding_batch_size: int = Field(default=32, gt=0, description="Chunks per embed call")

    # Retry policy
    retry_max_attempts: int = Field(default=5, ge=1, description="Attempts per collaborator call")
    retry_initial_backoff: float = Field(default=1.0, ge=0, description="First backoff in seconds")
    retry_max_backoff: float = Field(default=30.0, ge=0, description="Backoff ceiling in seconds")
    retry_jitter: float = Field(default=5.0, ge=0, description="Maximum random jitter in seconds")

    @model_validator(mode="after")
    def validate_overlap(self) -> "PipelineSettings":
        """Overlap must be smaller than the chunk size."""
        if self.chunk_overlap >= self.chunk_max_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_max_size ({self.chunk_max_size})"
            )
        return self

