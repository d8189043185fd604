"""
Object storage configuration settings.

Per-provider connection settings for reading source PDFs. All three
providers are reached through the S3 API: AWS S3 natively, MinIO via
its endpoint, GCS via its XML interoperability endpoint with HMAC keys.

Dependencies: pydantic, pydantic_settings
System role: Source object storage configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ObjectStorageSettings(BaseSettings):
    """Source object storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OBJECT_STORE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    s3_region: str = Field(default="ap-southeast-2", description="AWS region for S3 sources")

    minio_endpoint: str = Field(
        default="http://localhost:9000",
        description="MinIO endpoint URL",
    )
    minio_access_key: str | None = Field(default=None, description="MinIO access key")
    minio_secret_key: str | None = Field(default=None, description="MinIO secret key")

    gcs_endpoint: str = Field(
        default="https://storage.googleapis.com",
        description="GCS interoperability (S3 XML API) endpoint",
    )
    gcs_hmac_access_key: str | None = Field(default=None, description="GCS HMAC access id")
    gcs_hmac_secret: str | None = Field(default=None, description="GCS HMAC secret")

    connect_timeout: float = Field(default=5.0, description="Connect timeout in seconds")
    read_timeout: float = Field(default=60.0, description="Read timeout in seconds")
