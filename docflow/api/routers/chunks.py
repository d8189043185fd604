"""
Chunk listing API endpoint.

Routes: GET /chunks?doc_id=

Lists chunks of one document whatever its status, so in-flight
documents can be inspected. The response status field tells whether
the chunks are searchable yet.

Dependencies: docflow.core.retrieval
System role: Debug/inspection HTTP API
"""

from fastapi import APIRouter, Depends, Query

from docflow.api.deps import get_retrieval_service
from docflow.api.routers.router_utils import to_http_exception
from docflow.core.exceptions import DocflowError
from docflow.core.retrieval import ChunkListing, RetrievalService

router = APIRouter(prefix="/chunks", tags=["chunks"])


@router.get("", response_model=ChunkListing)
def list_chunks(
    doc_id: str = Query(..., min_length=1),
    service: RetrievalService = Depends(get_retrieval_service),
) -> ChunkListing:
    """
    List a document's chunks in page/sequence order.

    Raises:
        HTTPException(404): Unknown doc_id
        HTTPException(503): Store unavailable
    """
    try:
        return service.get_chunks(doc_id)
    except DocflowError as e:
        raise to_http_exception(e)
