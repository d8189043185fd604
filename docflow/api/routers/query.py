"""
Query API endpoints.

Routes:
- POST /query - Text query with filters
- GET /query - Text query via query string

Dependencies: docflow.core.retrieval, docflow.models
System role: Search HTTP API
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from docflow.api.deps import get_api_settings, get_retrieval_service
from docflow.api.routers.router_utils import to_http_exception
from docflow.configs.api import ApiSettings
from docflow.core.exceptions import DocflowError
from docflow.core.retrieval import RetrievalService
from docflow.models.query import QueryRequest, QueryResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/query", tags=["query"])


def _run_query(
    service: RetrievalService,
    text: str,
    filters: dict | None,
    k: int,
) -> QueryResponse:
    try:
        results = service.query(text, filters=filters, k=k)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DocflowError as e:
        logger.warning(
            f"{__name__}:query - Query failed: {e.kind}",
            extra={"error_kind": e.kind, "k": k},
        )
        raise to_http_exception(e)
    return QueryResponse(results=results, count=len(results), k=k)


@router.post("", response_model=QueryResponse)
def query_post(
    request: QueryRequest,
    service: RetrievalService = Depends(get_retrieval_service),
    api_settings: ApiSettings = Depends(get_api_settings),
) -> QueryResponse:
    """
    Search indexed chunks by text.

    Args:
        request: QueryRequest with text, optional filters and k
        service: Injected RetrievalService
        api_settings: Injected API settings (default k)

    Returns:
        QueryResponse: Results ordered by descending score

    Raises:
        HTTPException(400): Invalid filter or k
        HTTPException(503): Store or embedding model unavailable
    """
    k = request.k or api_settings.default_k
    return _run_query(service, request.text, request.filters, k)


@router.get("", response_model=QueryResponse)
def query_get(
    text: str = Query(..., min_length=1),
    k: int | None = Query(default=None, ge=1),
    doc_id: str | None = Query(default=None, description="Restrict to one document"),
    service: RetrievalService = Depends(get_retrieval_service),
    api_settings: ApiSettings = Depends(get_api_settings),
) -> QueryResponse:
    """Search indexed chunks by text, optionally within one document."""
    filters = {"doc_id": doc_id} if doc_id else None
    return _run_query(service, text, filters, k or api_settings.default_k)
