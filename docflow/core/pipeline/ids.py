"""
Deterministic identifiers.

doc_id and chunk_id are pure functions of stable inputs, so re-ingesting
an object or re-chunking unchanged OCR output overwrites existing records
instead of duplicating them.

Dependencies: hashlib
System role: Idempotency keys for every store write
"""

import hashlib

from docflow.core.pipeline.models.document import SourceRef

ID_LENGTH = 32
_SEP = "\x1f"


def _digest(*parts: object) -> str:
    joined = _SEP.join("" if p is None else str(p) for p in parts)
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def text_hash(text: str) -> str:
    """sha256 hex digest of a chunk's text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def content_hash(data: bytes) -> str:
    """sha256 hex digest of raw object bytes."""
    return hashlib.sha256(data).hexdigest()


def compute_doc_id(source: SourceRef) -> str:
    """
    Derive the document id from its source location.

    Args:
        source: Provider, bucket, key and optional version

    Returns:
        str: 32-char hex id, identical for identical sources
    """
    return _digest(source.provider, source.bucket, source.key, source.version)[:ID_LENGTH]


def compute_chunk_id(
    doc_id: str,
    page_start: int,
    page_end: int,
    sequence_index: int,
    chunk_text: str,
) -> str:
    """
    Derive a chunk id from its position and content.

    Args:
        doc_id: Owning document id
        page_start: First page of the span
        page_end: Last page of the span
        sequence_index: Position in document order
        chunk_text: Chunk text

    Returns:
        str: 32-char hex id
    """
    return _digest(doc_id, page_start, page_end, sequence_index, text_hash(chunk_text))[:ID_LENGTH]
