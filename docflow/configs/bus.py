"""
Message bus configuration settings.

Selects the topic bus backend and tunes partitioning and SQS polling.

Dependencies: pydantic, pydantic_settings
System role: Configuration for the stage-to-stage event channels
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BusSettings(BaseSettings):
    """Topic bus configuration (in-memory for local runs, SQS FIFO for prod)."""

    model_config = SettingsConfigDict(
        env_prefix="BUS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    backend: Literal["memory", "sqs"] = Field(
        default="memory",
        description="Bus backend: 'memory' for single-process runs, 'sqs' for production",
    )
    partitions: int = Field(
        default=4,
        ge=1,
        description="Number of partitions per topic (in-memory backend)",
    )
    consumer_group: str = Field(
        default="docflow",
        description="Consumer group name used for committed offsets",
    )

    # SQS settings
    region: str = Field(default="ap-southeast-2", description="AWS region for SQS")
    queue_prefix: str = Field(
        default="docflow-",
        description="Prefix of the FIFO queue name for each topic",
    )
    endpoint_url: str | None = Field(
        default=None,
        description="Override SQS endpoint (e.g. localstack)",
    )
    wait_time_seconds: int = Field(
        default=10,
        ge=0,
        le=20,
        description="Long-poll wait time for receive_message",
    )
    visibility_timeout: int = Field(
        default=300,
        description="Seconds a received message stays invisible before redelivery",
    )
    poll_interval: float = Field(
        default=0.5,
        description="Seconds each in-memory poll waits for a message",
    )
