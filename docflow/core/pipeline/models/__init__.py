"""
Models for the document processing pipeline.

Exports: Document, DocumentStatus, SourceRef, Chunk, OcrResult, pipeline events, StageOutcome
"""

from .chunk import Chunk
from .document import (
    Document,
    DocumentStatus,
    FailureRecord,
    SourceRef,
    StatusTransition,
)
from .events import (
    ChunkedEvent,
    EmbeddedEvent,
    ErrorEvent,
    IndexedEvent,
    IngestEvent,
    OcrDoneEvent,
    PipelineEvent,
    Topic,
    decode_event,
    encode_event,
)
from .ocr import LayoutBlock, OcrPage, OcrResult
from .results import StageOutcome

__all__ = [
    "Chunk",
    "ChunkedEvent",
    "Document",
    "DocumentStatus",
    "EmbeddedEvent",
    "ErrorEvent",
    "FailureRecord",
    "IndexedEvent",
    "IngestEvent",
    "LayoutBlock",
    "OcrDoneEvent",
    "OcrPage",
    "OcrResult",
    "PipelineEvent",
    "SourceRef",
    "StageOutcome",
    "StatusTransition",
    "Topic",
    "decode_event",
    "encode_event",
]
