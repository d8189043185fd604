"""
Retrieval API configuration settings.

Dependencies: pydantic, pydantic_settings
System role: HTTP server configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    """HTTP API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8082, description="Bind port")
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")
    default_k: int = Field(default=5, ge=1, description="Results returned when k is omitted")
    max_k: int = Field(default=100, ge=1, description="Upper bound for k")
