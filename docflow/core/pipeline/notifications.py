"""
Object storage notification parsing.

Turns bucket notifications into SourceRefs for the Ingest stage:

S3 / MinIO (optionally wrapped in an SNS envelope):
{
    "Records": [{
        "eventSource": "aws:s3" | "minio:s3",
        "eventName": "ObjectCreated:Put",
        "s3": {
            "bucket": {"name": "bucket-name"},
            "object": {"key": "pdfs/a.pdf", "versionId": "..."}
        }
    }]
}

GCS (Pub/Sub push envelope or raw object resource):
{
    "message": {
        "attributes": {"eventType": "OBJECT_FINALIZE", "bucketId": "b",
                       "objectId": "pdfs/a.pdf", "objectGeneration": "17"}
    }
}

Only object-created events for keys with an accepted suffix are returned.

Dependencies: json, base64
System role: Bridge from "object arrives" to Ingest
"""

import base64
import json
import logging
from typing import Any
from urllib.parse import unquote_plus

from docflow.core.exceptions import MessageParseError
from docflow.core.pipeline.models.document import SourceRef

logger = logging.getLogger(__name__)

DEFAULT_SUFFIXES = (".pdf",)


def parse_object_notification(
    body: str | bytes | dict[str, Any],
    suffixes: tuple[str, ...] = DEFAULT_SUFFIXES,
) -> list[SourceRef]:
    """
    Parse a storage notification.

    Args:
        body: Notification payload (JSON text or decoded mapping)
        suffixes: Accepted key suffixes, case-insensitive (empty accepts all)

    Returns:
        list[SourceRef]: Referenced objects, possibly empty (test events,
            deletions, non-PDF keys)

    Raises:
        MessageParseError: Payload is not a recognised notification
    """
    try:
        payload = json.loads(body) if isinstance(body, (str, bytes)) else body
        if not isinstance(payload, dict):
            raise ValueError("Notification must be a JSON object")
        refs = _parse(payload)
    except json.JSONDecodeError as e:
        logger.error("%s:parse_object_notification - JSONDecodeError: %s", __name__, e)
        raise MessageParseError(f"Invalid JSON in notification: {e}") from e
    except (ValueError, KeyError, TypeError) as e:
        logger.error("%s:parse_object_notification - %s: %s", __name__, type(e).__name__, e)
        raise MessageParseError(f"Invalid notification format: {e}") from e

    accepted = [
        ref for ref in refs
        if not suffixes or ref.key.lower().endswith(tuple(s.lower() for s in suffixes))
    ]
    if len(accepted) < len(refs):
        logger.info(
            "%s:parse_object_notification - Skipped %d object(s) by suffix",
            __name__,
            len(refs) - len(accepted),
        )
    return accepted


def _parse(payload: dict[str, Any]) -> list[SourceRef]:
    # SNS envelope around an S3 notification
    if payload.get("Type") == "Notification" and "Message" in payload:
        return _parse(json.loads(payload["Message"]))
    # S3 test event sent when notifications are configured
    if payload.get("Event") == "s3:TestEvent":
        return []
    if "Records" in payload:
        return [ref for ref in (_parse_s3_record(r) for r in payload["Records"]) if ref]
    if "message" in payload:
        return _parse_gcs_pubsub(payload["message"])
    if payload.get("kind") == "storage#object":
        return [_gcs_ref(payload["bucket"], payload["name"], payload.get("generation"))]
    raise ValueError("Unrecognised notification payload")


def _parse_s3_record(record: dict[str, Any]) -> SourceRef | None:
    source = record.get("eventSource", "")
    if source not in ("aws:s3", "minio:s3"):
        raise ValueError(f"Invalid event source: {source}")
    if not record.get("eventName", "").startswith(("ObjectCreated", "s3:ObjectCreated")):
        return None

    s3_info = record["s3"]
    object_info = s3_info["object"]
    key = unquote_plus(object_info.get("key", ""))
    if not key:
        raise ValueError("Missing S3 object key")
    return SourceRef(
        provider="minio" if source == "minio:s3" else "s3",
        bucket=s3_info["bucket"]["name"],
        key=key,
        version=object_info.get("versionId") or None,
    )


def _parse_gcs_pubsub(message: dict[str, Any]) -> list[SourceRef]:
    attributes = message.get("attributes") or {}
    if attributes.get("eventType") and attributes["eventType"] != "OBJECT_FINALIZE":
        return []
    if "bucketId" in attributes and "objectId" in attributes:
        return [_gcs_ref(attributes["bucketId"], attributes["objectId"], attributes.get("objectGeneration"))]
    data = message.get("data")
    if not data:
        raise ValueError("GCS message carries neither attributes nor data")
    resource = json.loads(base64.b64decode(data))
    return [_gcs_ref(resource["bucket"], resource["name"], resource.get("generation"))]


def _gcs_ref(bucket: str, name: str, generation: Any) -> SourceRef:
    return SourceRef(
        provider="gcs",
        bucket=bucket,
        key=name,
        version=str(generation) if generation else None,
    )
