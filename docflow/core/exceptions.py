"""
Exception hierarchy for the docflow pipeline.

Provides layered exception structure for domain-specific errors.
Every pipeline error belongs to one category that drives the stage
error policy: transient infrastructure errors are retried, permanent
input errors and ordering anomalies go straight to the error topic.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Failure taxonomy carried on error events."""

    TRANSIENT_INFRA = "transient_infra"
    PERMANENT_INPUT = "permanent_input"
    ORDERING_ANOMALY = "ordering_anomaly"
    INTERNAL = "internal"


class DocflowError(Exception):
    """Base exception for all docflow errors."""

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    @property
    def kind(self) -> str:
        """Error kind published on error events."""
        return type(self).__name__


class TransientInfraError(DocflowError):
    """Collaborator unavailable, timed out or throttled. Safe to retry."""

    category = ErrorCategory.TRANSIENT_INFRA


class PermanentInputError(DocflowError):
    """Input can never be processed as-is. Retrying will not help."""

    category = ErrorCategory.PERMANENT_INPUT


class OrderingAnomalyError(DocflowError):
    """Event arrived for a document whose state does not allow it."""

    category = ErrorCategory.ORDERING_ANOMALY

    def __init__(
        self,
        message: str,
        doc_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize ordering anomaly.

        Args:
            message: Error message
            doc_id: Document the event refers to
            details: Additional context
        """
        details = details or {}
        if doc_id:
            details["doc_id"] = doc_id
        super().__init__(message, details)


class ObjectNotFound(PermanentInputError):
    """Raised when the source object does not exist in object storage."""

    def __init__(self, uri: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize object not found error.

        Args:
            uri: Source object URI
            details: Additional context
        """
        details = details or {}
        details["uri"] = uri
        super().__init__(f"Object not found: {uri}", details)


class ObjectStoreUnavailable(TransientInfraError):
    """Raised when object storage cannot be reached."""


class OcrServiceError(TransientInfraError):
    """Raised when the OCR endpoint fails or times out."""


class OcrUnsupportedInput(PermanentInputError):
    """Raised when the OCR backend rejects the document bytes."""


class EmbeddingServiceError(TransientInfraError):
    """Raised when the embedding provider fails or times out."""


class EmbeddingDimMismatch(PermanentInputError):
    """Raised when the embedding dimension differs from configuration."""

    def __init__(
        self,
        expected: int,
        actual: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize dimension mismatch error.

        Args:
            expected: Configured dimension
            actual: Dimension returned by the model
            details: Additional context
        """
        details = details or {}
        details.update({"expected": expected, "actual": actual})
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}",
            details,
        )


class StoreUnavailableError(TransientInfraError):
    """Raised when document store operations fail."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize store error.

        Args:
            message: Error message
            operation: Operation that failed (upsert, query, delete)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class IndexNotReadyError(TransientInfraError):
    """Raised when written chunks are not yet searchable."""


class BusUnavailableError(TransientInfraError):
    """Raised when the message bus cannot be reached."""


class MessageParseError(PermanentInputError):
    """Raised when a bus message or object notification cannot be parsed."""


class IllegalTransitionError(DocflowError):
    """Raised when stage logic attempts a backward or unknown status move."""


class DocumentNotFoundError(DocflowError):
    """Raised when a document cannot be found."""

    def __init__(self, doc_id: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize document not found error.

        Args:
            doc_id: ID of the missing document
            details: Additional context
        """
        details = details or {}
        details["doc_id"] = doc_id
        super().__init__(f"Document not found: {doc_id}", details)


class InvalidFilterError(DocflowError):
    """Raised when a retrieval filter is malformed."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize invalid filter error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)
