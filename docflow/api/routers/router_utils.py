"""
Router helpers.

Maps docflow errors to HTTP errors so a failed read is never reported
as an empty result.

Dependencies: fastapi, docflow.core.exceptions
System role: Shared error translation for routers
"""

from fastapi import HTTPException

from docflow.core.exceptions import (
    DocflowError,
    DocumentNotFoundError,
    InvalidFilterError,
    ObjectNotFound,
    PermanentInputError,
    TransientInfraError,
)
from docflow.models.common import ErrorResponse


def status_for(error: DocflowError) -> int:
    """HTTP status code for a docflow error."""
    if isinstance(error, (DocumentNotFoundError, ObjectNotFound)):
        return 404
    if isinstance(error, InvalidFilterError):
        return 400
    if isinstance(error, TransientInfraError):
        return 503
    if isinstance(error, PermanentInputError):
        # e.g. the query embedding model disagrees with the index
        return 503
    return 500


def to_http_exception(error: DocflowError) -> HTTPException:
    """Wrap a docflow error in an HTTPException with an ErrorResponse body."""
    body = ErrorResponse(error=error.message, kind=error.kind, details=error.details or None)
    return HTTPException(status_code=status_for(error), detail=body.model_dump())
