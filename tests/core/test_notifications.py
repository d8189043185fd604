"""Tests for storage notification parsing."""

import base64
import json

import pytest

from docflow.core.exceptions import MessageParseError
from docflow.core.pipeline.notifications import parse_object_notification


def _s3_record(key: str, source: str = "aws:s3", event: str = "ObjectCreated:Put", version=None) -> dict:
    obj = {"key": key}
    if version:
        obj["versionId"] = version
    return {
        "eventSource": source,
        "eventName": event,
        "s3": {"bucket": {"name": "uploads"}, "object": obj},
    }


class TestS3Notifications:
    """Test S3 and MinIO payloads."""

    def test_parses_s3_record(self) -> None:
        """Should return a SourceRef with bucket, key and version."""
        refs = parse_object_notification({"Records": [_s3_record("pdfs/a.pdf", version="v7")]})

        assert len(refs) == 1
        assert refs[0].provider == "s3"
        assert refs[0].bucket == "uploads"
        assert refs[0].key == "pdfs/a.pdf"
        assert refs[0].version == "v7"

    def test_minio_source(self) -> None:
        """Should map minio:s3 records to the minio provider."""
        body = {"Records": [_s3_record("a.pdf", source="minio:s3", event="s3:ObjectCreated:Put")]}

        refs = parse_object_notification(json.dumps(body))

        assert refs[0].provider == "minio"

    def test_url_encoded_key(self) -> None:
        """Should decode keys the way S3 encodes them."""
        refs = parse_object_notification({"Records": [_s3_record("reports/Q1+summary%281%29.pdf")]})

        assert refs[0].key == "reports/Q1 summary(1).pdf"

    def test_sns_envelope(self) -> None:
        """Should unwrap an SNS notification."""
        body = {
            "Type": "Notification",
            "Message": json.dumps({"Records": [_s3_record("a.pdf")]}),
        }

        assert [r.key for r in parse_object_notification(body)] == ["a.pdf"]

    def test_test_event_and_deletes_ignored(self) -> None:
        """Should return nothing for test events and non-create events."""
        assert parse_object_notification({"Event": "s3:TestEvent"}) == []
        assert parse_object_notification(
            {"Records": [_s3_record("a.pdf", event="ObjectRemoved:Delete")]}
        ) == []

    def test_suffix_filter(self) -> None:
        """Should keep only accepted suffixes, case-insensitively."""
        body = {"Records": [_s3_record("a.PDF"), _s3_record("b.txt")]}

        assert [r.key for r in parse_object_notification(body)] == ["a.PDF"]
        assert len(parse_object_notification(body, suffixes=())) == 2

    def test_invalid_event_source(self) -> None:
        """Should reject records from unknown sources."""
        with pytest.raises(MessageParseError):
            parse_object_notification({"Records": [_s3_record("a.pdf", source="aws:sqs")]})


class TestGcsNotifications:
    """Test GCS Pub/Sub and object resource payloads."""

    def test_pubsub_attributes(self) -> None:
        """Should read bucket, object and generation from attributes."""
        body = {
            "message": {
                "attributes": {
                    "eventType": "OBJECT_FINALIZE",
                    "bucketId": "bucket",
                    "objectId": "pdfs/a.pdf",
                    "objectGeneration": "1700000000",
                }
            }
        }

        refs = parse_object_notification(body)

        assert refs[0].provider == "gcs"
        assert refs[0].uri == "gcs://bucket/pdfs/a.pdf?version=1700000000"

    def test_pubsub_base64_data(self) -> None:
        """Should decode the object resource carried in message data."""
        resource = {"bucket": "bucket", "name": "pdfs/a.pdf", "generation": 3}
        body = {"message": {"data": base64.b64encode(json.dumps(resource).encode()).decode()}}

        refs = parse_object_notification(body)

        assert refs[0].key == "pdfs/a.pdf"
        assert refs[0].version == "3"

    def test_non_finalize_ignored(self) -> None:
        """Should ignore deletes and metadata updates."""
        body = {"message": {"attributes": {"eventType": "OBJECT_DELETE", "bucketId": "b", "objectId": "a.pdf"}}}

        assert parse_object_notification(body) == []

    def test_object_resource(self) -> None:
        """Should accept a raw storage#object resource."""
        body = {"kind": "storage#object", "bucket": "bucket", "name": "a.pdf"}

        refs = parse_object_notification(body)

        assert refs[0].version is None


class TestInvalidPayloads:
    """Test parse failures."""

    @pytest.mark.parametrize(
        "body",
        [
            "not json",
            "[1, 2]",
            {"unexpected": True},
            {"message": {}},
            {"Records": [{"eventSource": "aws:s3", "eventName": "ObjectCreated:Put", "s3": {}}]},
        ],
    )
    def test_raises_message_parse_error(self, body) -> None:
        """Should raise MessageParseError for unrecognised payloads."""
        with pytest.raises(MessageParseError):
            parse_object_notification(body)
