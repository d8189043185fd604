"""
Metadata filter validation and evaluation.

Filters use a Mongo-style subset:
    {"doc_id": "abc"}                          equality shorthand
    {"page_start": {"$gte": 2, "$lte": 5}}     range
    {"section_title": {"$in": ["Refunds"]}}    membership
Keys are chunk fields (doc_id, chunk_id, page_start, page_end,
sequence_index) or metadata keys. A list-valued metadata key matches
$eq/$in when any element matches.

Dependencies: docflow.core.exceptions
System role: Shared filter semantics for every store backend
"""

from typing import Any

from docflow.core.exceptions import InvalidFilterError
from docflow.core.pipeline.models.chunk import Chunk

CHUNK_FIELDS = frozenset({"doc_id", "chunk_id", "page_start", "page_end", "sequence_index"})
RANGE_OPERATORS = frozenset({"$gt", "$gte", "$lt", "$lte"})
OPERATORS = frozenset({"$eq", "$ne", "$in"}) | RANGE_OPERATORS
SCALAR_TYPES = (str, int, float, bool)

NormalizedFilters = dict[str, dict[str, Any]]


def normalize_filters(filters: dict[str, Any] | None) -> NormalizedFilters:
    """
    Validate filters and expand equality shorthand.

    Args:
        filters: Raw filter mapping from the caller

    Returns:
        NormalizedFilters: {field: {operator: value}}

    Raises:
        InvalidFilterError: Unknown operator, bad field name or bad operand
    """
    if not filters:
        return {}
    if not isinstance(filters, dict):
        raise InvalidFilterError("Filters must be an object")

    normalized: NormalizedFilters = {}
    for field, condition in filters.items():
        if not isinstance(field, str) or not field or field.startswith("$"):
            raise InvalidFilterError(f"Invalid filter field: {field!r}", field=str(field))
        if field.startswith("metadata."):
            field = field[len("metadata."):]

        if isinstance(condition, dict):
            if not condition:
                raise InvalidFilterError("Empty operator object", field=field)
            ops: dict[str, Any] = {}
            for op, operand in condition.items():
                _check_operand(field, op, operand)
                ops[op] = operand
            normalized[field] = ops
        elif condition is None or isinstance(condition, SCALAR_TYPES):
            normalized[field] = {"$eq": condition}
        else:
            raise InvalidFilterError(
                f"Unsupported filter value type: {type(condition).__name__}",
                field=field,
            )
    return normalized


def _check_operand(field: str, op: str, operand: Any) -> None:
    if op not in OPERATORS:
        raise InvalidFilterError(f"Unknown filter operator: {op}", field=field)
    if op == "$in":
        if not isinstance(operand, list) or not operand:
            raise InvalidFilterError("$in requires a non-empty list", field=field)
        if not all(isinstance(v, SCALAR_TYPES) for v in operand):
            raise InvalidFilterError("$in values must be scalars", field=field)
    elif op in RANGE_OPERATORS:
        if isinstance(operand, bool) or not isinstance(operand, (int, float, str)):
            raise InvalidFilterError(f"{op} requires a number or string", field=field)
    elif operand is not None and not isinstance(operand, SCALAR_TYPES):
        raise InvalidFilterError(f"{op} requires a scalar", field=field)


def field_value(chunk: Chunk, field: str) -> Any:
    if field in CHUNK_FIELDS:
        return getattr(chunk, field)
    return chunk.metadata.get(field)


def _compare(value: Any, op: str, operand: Any) -> bool:
    if isinstance(value, list) and op in ("$eq", "$in", "$ne"):
        if op == "$eq":
            return operand in value
        if op == "$ne":
            return operand not in value
        return any(v in operand for v in value)
    try:
        if op == "$eq":
            return value == operand
        if op == "$ne":
            return value != operand
        if op == "$in":
            return value in operand
        if value is None:
            return False
        if op == "$gt":
            return value > operand
        if op == "$gte":
            return value >= operand
        if op == "$lt":
            return value < operand
        if op == "$lte":
            return value <= operand
    except TypeError:
        return False
    return False


def matches(chunk: Chunk, filters: NormalizedFilters) -> bool:
    """True when the chunk satisfies every condition."""
    for field, ops in filters.items():
        value = field_value(chunk, field)
        for op, operand in ops.items():
            if not _compare(value, op, operand):
                return False
    return True
