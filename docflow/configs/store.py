"""
Document store configuration settings.

Manages the backend for Document/Chunk records and the vector index
used for retrieval (S3 JSON records plus S3 Vectors in production).

Dependencies: pydantic, pydantic_settings
System role: Document store configuration for pipeline and retrieval
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Document store configuration (memory for dev/tests, S3 + S3 Vectors for prod)."""

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    backend: Literal["memory", "s3"] = Field(
        default="memory",
        description="Store type: 'memory' for local dev, 's3' for production",
    )
    region: str = Field(default="ap-southeast-2", description="AWS region for S3 and S3 Vectors")
    bucket: str = Field(
        default="docflow-dev-records",
        description="S3 bucket holding document, chunk and OCR records",
    )
    prefix: str = Field(default="docflow/", description="Key prefix inside the records bucket")
    vectors_bucket: str = Field(
        default="docflow-dev-vectors",
        description="S3 Vectors bucket name",
    )
    index_name: str = Field(default="chunks", description="S3 Vectors index name")
    distance_metric: Literal["cosine", "dot", "euclidean"] = Field(
        default="cosine",
        description="Similarity metric used for vector search",
    )
    overfetch: int = Field(
        default=4,
        ge=1,
        description="Candidate multiplier applied to k before status/filter post-filtering",
    )
