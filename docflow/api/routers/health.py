"""
Health check API endpoints.

Routes: GET /health, GET /health/ready

Dependencies: docflow.dependencies
System role: Health check HTTP API
"""

import logging

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from docflow.api.deps import get_pipeline_container
from docflow.core.exceptions import DocflowError
from docflow.dependencies import PipelineContainer

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    message: str
    checks: dict[str, bool] | None = None


router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness check."""
    return HealthResponse(status="healthy", message="Server Healthy")


@router.get("/ready", response_model=HealthResponse)
def readiness_check(
    response: Response,
    container: PipelineContainer = Depends(get_pipeline_container),
) -> HealthResponse:
    """
    Readiness check over the document store and the bus.

    Returns 503 when either dependency is unreachable.
    """
    checks = {}
    for name in ("store", "bus"):
        try:
            checks[name] = bool(getattr(container, name).ping())
        except DocflowError as e:
            logger.warning(f"{__name__}:readiness_check - {name} not ready: {e}")
            checks[name] = False

    if all(checks.values()):
        return HealthResponse(status="healthy", message="Store and bus reachable", checks=checks)

    response.status_code = 503
    failing = ", ".join(name for name, ok in checks.items() if not ok)
    return HealthResponse(status="unhealthy", message=f"Not ready: {failing}", checks=checks)
