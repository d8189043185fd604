"""
S3-API object store.

Reads source PDFs from AWS S3, MinIO or GCS (through its S3
interoperability endpoint with HMAC keys). Existence is checked with
head_object.

Dependencies: boto3, botocore
System role: Production ObjectStore implementation
"""

import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from docflow.core.exceptions import ObjectNotFound, ObjectStoreUnavailable
from docflow.core.pipeline.models.document import SourceRef

logger = logging.getLogger(__name__)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class S3ObjectStore:
    """ObjectStore over one S3-compatible endpoint."""

    def __init__(
        self,
        region: str | None = None,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 60.0,
        send_version: bool = True,
        client=None,
    ) -> None:
        """
        Initialize S3 client.

        Args:
            region: AWS region
            endpoint_url: Custom endpoint (MinIO, GCS interoperability)
            access_key: Explicit access key (MinIO / GCS HMAC)
            secret_key: Explicit secret key
            connect_timeout: Connect timeout in seconds
            read_timeout: Read timeout in seconds
            send_version: Pass SourceRef.version as VersionId (off for GCS,
                whose generations are not S3 version ids)
            client: Pre-built boto3 client (tests)
        """
        self._send_version = send_version
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            config=Config(connect_timeout=connect_timeout, read_timeout=read_timeout),
        )

    def _params(self, ref: SourceRef) -> dict:
        params = {"Bucket": ref.bucket, "Key": ref.key}
        if ref.version and self._send_version:
            params["VersionId"] = ref.version
        return params

    def exists(self, ref: SourceRef) -> bool:
        """
        Check if an object exists.

        Args:
            ref: Source reference

        Returns:
            bool: True if the object exists
        """
        try:
            self._client.head_object(**self._params(ref))
            return True
        except ClientError as e:
            if _error_code(e) in ("404", "NoSuchKey", "NotFound", "NoSuchVersion", "403"):
                logger.info(f"{__name__}:exists - {ref.uri} not found ({_error_code(e)})")
                return False
            raise ObjectStoreUnavailable(
                f"head_object failed for {ref.uri}", details={"error": str(e)}
            ) from e
        except BotoCoreError as e:
            raise ObjectStoreUnavailable(
                f"head_object failed for {ref.uri}", details={"error": str(e)}
            ) from e

    def read(self, ref: SourceRef) -> bytes:
        """
        Download object bytes.

        Args:
            ref: Source reference

        Returns:
            bytes: Object content
        """
        try:
            response = self._client.get_object(**self._params(ref))
            return response["Body"].read()
        except ClientError as e:
            if _error_code(e) in ("404", "NoSuchKey", "NoSuchVersion"):
                raise ObjectNotFound(ref.uri) from e
            raise ObjectStoreUnavailable(
                f"get_object failed for {ref.uri}", details={"error": str(e)}
            ) from e
        except BotoCoreError as e:
            raise ObjectStoreUnavailable(
                f"get_object failed for {ref.uri}", details={"error": str(e)}
            ) from e
