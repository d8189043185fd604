"""
S3 + S3 Vectors document store.

Document, OCR and Chunk records are JSON objects in an S3 bucket:
    {prefix}documents/{doc_id}.json
    {prefix}ocr/{doc_id}.json
    {prefix}chunks/{doc_id}/{chunk_id}.json
Chunk vectors live in an S3 Vectors index keyed by chunk_id, with
filterable metadata (doc_id, pages, sequence, embedding_version and
scalar chunk metadata). Every write is a put keyed by id, so repeated
writes converge. Search queries the vector index, then drops hits whose
document is not INDEXED or whose vector is from another embedding
version.

Dependencies: boto3, botocore
System role: Production document store
"""

import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from docflow.boundary.store.base import DocumentStore, SearchHit
from docflow.boundary.store.filters import matches, normalize_filters
from docflow.core.exceptions import StoreUnavailableError
from docflow.core.pipeline.models.chunk import Chunk
from docflow.core.pipeline.models.document import Document, DocumentStatus
from docflow.core.pipeline.models.ocr import OcrResult

logger = logging.getLogger(__name__)

PUT_VECTORS_BATCH = 500
GET_VECTORS_BATCH = 100
DELETE_OBJECTS_BATCH = 1000
MAX_TOP_K = 100


def _is_not_found(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code", "")
    return code in ("404", "NoSuchKey", "NotFound", "NotFoundException")


def _batches(items: list, size: int):
    for i in range(0, len(items), size):
        yield items[i:i + size]


class S3DocumentStore(DocumentStore):
    """DocumentStore backed by S3 JSON records and an S3 Vectors index."""

    def __init__(
        self,
        bucket: str,
        vectors_bucket: str,
        index_name: str = "chunks",
        prefix: str = "docflow/",
        region: str = "ap-southeast-2",
        distance_metric: str = "cosine",
        overfetch: int = 4,
        s3_client=None,
        vectors_client=None,
    ) -> None:
        """
        Initialize S3 and S3 Vectors clients.

        Args:
            bucket: Records bucket
            vectors_bucket: S3 Vectors bucket name
            index_name: Index name within the vectors bucket
            prefix: Key prefix for records
            region: AWS region
            distance_metric: Metric the index was created with (cosine or euclidean)
            overfetch: Candidate multiplier applied to k before post-filtering
            s3_client: Pre-built S3 client (tests)
            vectors_client: Pre-built S3 Vectors client (tests)
        """
        if distance_metric not in ("cosine", "euclidean"):
            raise ValueError(f"S3 Vectors does not support metric: {distance_metric}")
        self._bucket = bucket
        self._vectors_bucket = vectors_bucket
        self._index_name = index_name
        self._prefix = prefix
        self._metric = distance_metric
        self._overfetch = overfetch
        config = Config(connect_timeout=5, read_timeout=30, retries={"max_attempts": 3})
        self._s3 = s3_client or boto3.client("s3", region_name=region, config=config)
        self._vectors = vectors_client or boto3.client("s3vectors", region_name=region, config=config)

    # Key layout

    def _document_key(self, doc_id: str) -> str:
        return f"{self._prefix}documents/{doc_id}.json"

    def _ocr_key(self, doc_id: str) -> str:
        return f"{self._prefix}ocr/{doc_id}.json"

    def _chunk_prefix(self, doc_id: str) -> str:
        return f"{self._prefix}chunks/{doc_id}/"

    def _chunk_key(self, doc_id: str, chunk_id: str) -> str:
        return f"{self._chunk_prefix(doc_id)}{chunk_id}.json"

    # Raw object helpers

    def _put_json(self, key: str, body: str, operation: str) -> None:
        try:
            self._s3.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=body.encode("utf-8"),
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailableError(
                f"Failed to write {key}", operation=operation, details={"error": str(e)}
            ) from e

    def _get_json(self, key: str, operation: str) -> str | None:
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read().decode("utf-8")
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise StoreUnavailableError(
                f"Failed to read {key}", operation=operation, details={"error": str(e)}
            ) from e
        except BotoCoreError as e:
            raise StoreUnavailableError(
                f"Failed to read {key}", operation=operation, details={"error": str(e)}
            ) from e

    # Documents

    def get_document(self, doc_id: str) -> Document | None:
        body = self._get_json(self._document_key(doc_id), "get_document")
        return Document.model_validate_json(body) if body else None

    def upsert_document(self, document: Document) -> None:
        self._put_json(
            self._document_key(document.doc_id),
            document.model_dump_json(),
            "upsert_document",
        )

    # OCR artifacts

    def put_ocr_artifact(self, doc_id: str, ocr: OcrResult) -> None:
        self._put_json(self._ocr_key(doc_id), ocr.model_dump_json(), "put_ocr_artifact")

    def get_ocr_artifact(self, doc_id: str) -> OcrResult | None:
        body = self._get_json(self._ocr_key(doc_id), "get_ocr_artifact")
        return OcrResult.model_validate_json(body) if body else None

    # Chunks

    def upsert_chunks(self, chunks: list[Chunk]) -> None:
        for chunk in chunks:
            self._put_json(
                self._chunk_key(chunk.doc_id, chunk.chunk_id),
                chunk.model_dump_json(),
                "upsert_chunks",
            )

        vectors = [self._vector_entry(c) for c in chunks if c.embedding is not None]
        for batch in _batches(vectors, PUT_VECTORS_BATCH):
            try:
                self._vectors.put_vectors(
                    vectorBucketName=self._vectors_bucket,
                    indexName=self._index_name,
                    vectors=batch,
                )
            except (ClientError, BotoCoreError) as e:
                raise StoreUnavailableError(
                    "Failed to put vectors to S3 Vectors",
                    operation="put_vectors",
                    details={"error": str(e), "vector_count": len(batch)},
                ) from e

    @staticmethod
    def _vector_entry(chunk: Chunk) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "doc_id": chunk.doc_id,
            "page_start": chunk.page_start,
            "page_end": chunk.page_end,
            "sequence_index": chunk.sequence_index,
            "embedding_version": chunk.embedding_version,
        }
        for key, value in chunk.metadata.items():
            if key in metadata:
                continue
            if isinstance(value, (str, int, float, bool)):
                metadata[key] = value
            elif isinstance(value, list) and all(isinstance(v, str) for v in value):
                metadata[key] = value
        return {
            "key": chunk.chunk_id,
            "data": {"float32": [float(v) for v in chunk.embedding]},
            "metadata": metadata,
        }

    def _list_chunk_keys(self, doc_id: str) -> list[str]:
        keys: list[str] = []
        try:
            paginator = self._s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=self._chunk_prefix(doc_id)):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailableError(
                f"Failed to list chunks of {doc_id}",
                operation="list_chunks",
                details={"error": str(e)},
            ) from e
        return keys

    def list_chunks(self, doc_id: str) -> list[Chunk]:
        chunks = []
        for key in self._list_chunk_keys(doc_id):
            body = self._get_json(key, "list_chunks")
            if body:
                chunks.append(Chunk.model_validate_json(body))
        return sorted(chunks, key=lambda c: (c.page_start, c.sequence_index))

    def delete_chunks(self, doc_id: str, chunk_ids: list[str]) -> None:
        if not chunk_ids:
            return
        try:
            for batch in _batches(chunk_ids, DELETE_OBJECTS_BATCH):
                self._s3.delete_objects(
                    Bucket=self._bucket,
                    Delete={
                        "Objects": [{"Key": self._chunk_key(doc_id, cid)} for cid in batch],
                        "Quiet": True,
                    },
                )
            for batch in _batches(chunk_ids, PUT_VECTORS_BATCH):
                self._vectors.delete_vectors(
                    vectorBucketName=self._vectors_bucket,
                    indexName=self._index_name,
                    keys=batch,
                )
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailableError(
                f"Failed to delete chunks of {doc_id}",
                operation="delete_chunks",
                details={"error": str(e), "chunk_count": len(chunk_ids)},
            ) from e

    # Index

    def refresh(self, doc_id: str | None = None) -> None:
        # S3 Vectors writes are readable once put_vectors returns
        return None

    def count_searchable(self, doc_id: str, embedding_version: str) -> int:
        chunk_ids = [
            key.rsplit("/", 1)[-1].removesuffix(".json")
            for key in self._list_chunk_keys(doc_id)
        ]
        count = 0
        for batch in _batches(chunk_ids, GET_VECTORS_BATCH):
            try:
                response = self._vectors.get_vectors(
                    vectorBucketName=self._vectors_bucket,
                    indexName=self._index_name,
                    keys=batch,
                    returnData=False,
                    returnMetadata=True,
                )
            except (ClientError, BotoCoreError) as e:
                raise StoreUnavailableError(
                    "Failed to read vectors from S3 Vectors",
                    operation="get_vectors",
                    details={"error": str(e)},
                ) from e
            count += sum(
                1 for vector in response.get("vectors", [])
                if vector.get("metadata", {}).get("embedding_version") == embedding_version
            )
        return count

    def search(
        self,
        vector: list[float],
        k: int,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchHit]:
        normalized = normalize_filters(filters)
        if k <= 0:
            return []

        request: dict[str, Any] = {
            "vectorBucketName": self._vectors_bucket,
            "indexName": self._index_name,
            "queryVector": {"float32": [float(v) for v in vector]},
            "topK": min(k * self._overfetch, MAX_TOP_K),
            "returnMetadata": True,
            "returnDistance": True,
        }
        vector_filter = self._vector_filter(normalized)
        if vector_filter:
            request["filter"] = vector_filter

        try:
            response = self._vectors.query_vectors(**request)
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailableError(
                "Failed to query vectors from S3 Vectors",
                operation="query_vectors",
                details={"error": str(e)},
            ) from e

        documents: dict[str, Document | None] = {}
        hits: list[SearchHit] = []
        for match in response.get("vectors", []):
            metadata = match.get("metadata", {})
            doc_id = metadata.get("doc_id")
            if not doc_id:
                continue
            if doc_id not in documents:
                documents[doc_id] = self.get_document(doc_id)
            doc = documents[doc_id]
            if doc is None or doc.status != DocumentStatus.INDEXED:
                continue
            if metadata.get("embedding_version") != doc.embedding_version:
                continue
            body = self._get_json(self._chunk_key(doc_id, match["key"]), "search")
            if not body:
                continue
            chunk = Chunk.model_validate_json(body)
            if not matches(chunk, normalized):
                continue
            hits.append(SearchHit(chunk=chunk, score=self._score(match.get("distance", 0.0))))
            if len(hits) >= k:
                break

        logger.info(
            f"{__name__}:search - Found {len(hits)} results",
            extra={"k": k, "candidates": len(response.get("vectors", []))},
        )
        return hits

    def _score(self, distance: float) -> float:
        if self._metric == "cosine":
            return 1.0 - float(distance)
        return -float(distance)

    @staticmethod
    def _vector_filter(normalized: dict[str, dict[str, Any]]) -> dict[str, Any] | None:
        clauses = []
        for field, ops in normalized.items():
            if field == "chunk_id":
                # chunk_id is the vector key, not metadata
                continue
            for op, operand in ops.items():
                if operand is None:
                    # Null comparisons are evaluated on the fetched records
                    continue
                clauses.append({field: {op: operand}})
        if not clauses:
            return None
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}

    def ping(self) -> bool:
        try:
            self._s3.head_bucket(Bucket=self._bucket)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"{__name__}:ping - Records bucket unreachable: {e}")
            return False
        return True
