"""
OCR collaborator interface.

Dependencies: typing
System role: Contract consumed by the OCR stage
"""

from typing import Protocol

from docflow.core.pipeline.models.ocr import OcrResult


class OcrClient(Protocol):
    """Turns PDF bytes into per-page text."""

    def ocr(self, pdf_bytes: bytes) -> OcrResult:
        """
        Extract page text and layout hints.

        Raises:
            OcrServiceError: Endpoint unavailable or timed out (transient)
            OcrUnsupportedInput: Document cannot be processed (permanent)
        """
        ...
