"""
Shared process settings.

Fields every docflow process reads regardless of role (worker, API, CLI).
Concern-specific settings live in their own modules with an env_prefix.

Dependencies: pydantic_settings
System role: Root of the Settings aggregate
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProcessSettings(BaseSettings):
    """Settings shared by workers, the API and the CLI."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(
        default="local",
        description="Deployment environment (local, staging, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level for configure_logging()",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level
