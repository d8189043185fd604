"""
Stage outcome model.

Represents the result of handling one event in a stage worker.

Dependencies: pydantic
System role: Return type for StageWorker.handle()
"""

from typing import Literal

from pydantic import BaseModel, Field

from docflow.core.pipeline.models.events import Topic


class StageOutcome(BaseModel):
    """Result of a stage worker handling one event."""

    doc_id: str = Field(description="Document identifier")
    stage: str = Field(description="Stage name")
    status: Literal["processed", "skipped", "failed"] = Field(
        description="processed: work done; skipped: idempotent short-circuit; failed: error event emitted",
    )
    emitted_topic: Topic | None = Field(default=None, description="Topic the follow-up event went to")
    attempt: int = Field(default=0, ge=0)
    error_kind: str | None = Field(default=None)
    error_category: str | None = Field(default=None)
    error_message: str | None = Field(default=None)
    processing_time_ms: float = Field(default=0.0, description="Handling time in milliseconds")
