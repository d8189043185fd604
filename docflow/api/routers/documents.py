"""
Document API endpoint.

Routes: GET /documents/{doc_id}

Dependencies: docflow.core.retrieval
System role: Document status HTTP API
"""

from fastapi import APIRouter, Depends

from docflow.api.deps import get_retrieval_service
from docflow.api.routers.router_utils import to_http_exception
from docflow.core.exceptions import DocflowError
from docflow.core.pipeline.models.document import Document
from docflow.core.retrieval import RetrievalService

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("/{doc_id}", response_model=Document)
def get_document(
    doc_id: str,
    service: RetrievalService = Depends(get_retrieval_service),
) -> Document:
    """
    Get a document record with its status timeline and last error.

    Raises:
        HTTPException(404): Unknown doc_id
        HTTPException(503): Store unavailable
    """
    try:
        return service.get_document(doc_id)
    except DocflowError as e:
        raise to_http_exception(e)
