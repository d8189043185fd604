"""
HTTP OCR client.

Posts PDF bytes to a model-serving OCR endpoint and parses the
{pages: [{page_no, text, layout_blocks?}]} response.

Status mapping:
- 400, 413, 415, 422: OcrUnsupportedInput (the document is the problem)
- timeouts, connection errors, any other non-2xx: OcrServiceError

Dependencies: httpx, pydantic
System role: Production OCR collaborator
"""

import logging

import httpx
from pydantic import ValidationError

from docflow.core.exceptions import OcrServiceError, OcrUnsupportedInput
from docflow.core.pipeline.models.ocr import OcrResult

logger = logging.getLogger(__name__)

UNSUPPORTED_STATUS = frozenset({400, 413, 415, 422})


class HttpOcrClient:
    """OCR collaborator over HTTP."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 120.0,
        client: httpx.Client | None = None,
    ) -> None:
        """
        Initialize OCR client.

        Args:
            endpoint: OCR URL accepting application/pdf bodies
            timeout: Request timeout in seconds
            client: Pre-built httpx client (tests)
        """
        self._endpoint = endpoint
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout, connect=10.0))

    def ocr(self, pdf_bytes: bytes) -> OcrResult:
        """
        Run OCR on a PDF.

        Args:
            pdf_bytes: Raw PDF content

        Returns:
            OcrResult: Pages with text and optional layout blocks

        Raises:
            OcrServiceError: Transient endpoint failure
            OcrUnsupportedInput: Endpoint rejected the document
        """
        try:
            r = self._client.post(
                self._endpoint,
                content=pdf_bytes,
                headers={"Content-Type": "application/pdf"},
            )
        except httpx.TimeoutException as e:
            raise OcrServiceError(
                "OCR request timed out", details={"endpoint": self._endpoint}
            ) from e
        except httpx.HTTPError as e:
            raise OcrServiceError(
                f"OCR request failed: {type(e).__name__}",
                details={"endpoint": self._endpoint, "error": str(e)},
            ) from e

        if r.status_code in UNSUPPORTED_STATUS:
            raise OcrUnsupportedInput(
                f"OCR rejected document with HTTP {r.status_code}",
                details={"status_code": r.status_code, "body": r.text[:500]},
            )
        if r.is_error:
            raise OcrServiceError(
                f"OCR endpoint returned HTTP {r.status_code}",
                details={"status_code": r.status_code},
            )

        try:
            result = OcrResult.model_validate(r.json())
        except (ValueError, ValidationError) as e:
            raise OcrServiceError(
                "OCR endpoint returned an unreadable response",
                details={"error": str(e)[:500]},
            ) from e

        logger.info(
            f"{__name__}:ocr - Extracted {result.page_count} pages",
            extra={"bytes": len(pdf_bytes), "pages": result.page_count},
        )
        return result
