"""
Ingest API endpoint.

Routes: POST /ingest

Validates the object exists, creates the document record if needed and
emits the first pipeline event. Re-ingesting the same object returns
the same doc_id without creating a second document.

Dependencies: docflow.core.pipeline.stages
System role: Manual ingestion HTTP API
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from docflow.api.deps import get_ingest_worker
from docflow.api.routers.router_utils import to_http_exception
from docflow.core.exceptions import DocflowError, ErrorCategory
from docflow.core.pipeline.stages import IngestWorker
from docflow.models.common import ErrorResponse
from docflow.models.ingest import IngestRequest, IngestResponse
from docflow.observability.correlation import get_trace_id, new_trace_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingest", tags=["ingest"])

_FAILURE_STATUS = {
    ErrorCategory.PERMANENT_INPUT.value: 400,
    ErrorCategory.TRANSIENT_INFRA.value: 503,
}


@router.post("", response_model=IngestResponse, status_code=202)
def ingest(
    request: IngestRequest,
    worker: IngestWorker = Depends(get_ingest_worker),
) -> IngestResponse:
    """
    Ingest one object reference.

    Args:
        request: IngestRequest with source and optional trace id
        worker: Injected IngestWorker

    Returns:
        IngestResponse: doc_id and current document status

    Raises:
        HTTPException(404): Object does not exist
        HTTPException(400): Unusable reference
        HTTPException(503): Object storage, store or bus unavailable
    """
    trace_id = request.trace_id or get_trace_id() or new_trace_id()
    outcome = worker.ingest(request.source, trace_id=trace_id)

    if outcome.status == "failed":
        if outcome.error_kind == "ObjectNotFound":
            status_code = 404
        else:
            status_code = _FAILURE_STATUS.get(outcome.error_category, 500)
        body = ErrorResponse(
            error=outcome.error_message or "Ingest failed",
            kind=outcome.error_kind or "Unknown",
            details={"doc_id": outcome.doc_id, "uri": request.source.uri},
        )
        raise HTTPException(status_code=status_code, detail=body.model_dump())

    try:
        doc = worker.store.get_document(outcome.doc_id)
    except DocflowError as e:
        logger.warning(f"{__name__}:ingest - Ingested {outcome.doc_id} but could not read it back: {e}")
        raise to_http_exception(e)
    logger.info(
        f"{__name__}:ingest - Ingested {request.source.uri}",
        extra={"doc_id": outcome.doc_id, "outcome": outcome.status},
    )
    return IngestResponse(
        doc_id=outcome.doc_id,
        status=doc.status if doc else None,
        outcome=outcome.status,
        trace_id=trace_id,
    )
