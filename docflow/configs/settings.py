"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI and the workers.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from pydantic import Field

from docflow.configs.api import ApiSettings
from docflow.configs.base import ProcessSettings
from docflow.configs.bus import BusSettings
from docflow.configs.object_storage import ObjectStorageSettings
from docflow.configs.pipeline import PipelineSettings
from docflow.configs.store import StoreSettings


class Settings(ProcessSettings):
    """Unified application settings aggregating all config modules."""

    # Aggregated settings
    bus: BusSettings = Field(default_factory=BusSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    object_storage: ObjectStorageSettings = Field(default_factory=ObjectStorageSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from docflow.configs import get_settings
        settings = get_settings()
    """
    return Settings()
