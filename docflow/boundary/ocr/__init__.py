"""
OCR boundary.

Exports: OcrClient, HttpOcrClient, PdfTextOcr, get_ocr_client
"""

from docflow.boundary.ocr.base import OcrClient
from docflow.boundary.ocr.http_client import HttpOcrClient
from docflow.boundary.ocr.pdf_text import PdfTextOcr
from docflow.configs.pipeline import PipelineSettings


def get_ocr_client(settings: PipelineSettings) -> OcrClient:
    """Create the configured OCR backend."""
    if settings.ocr_backend == "pypdf":
        return PdfTextOcr()
    return HttpOcrClient(endpoint=settings.ocr_endpoint, timeout=settings.ocr_timeout)


__all__ = ["HttpOcrClient", "OcrClient", "PdfTextOcr", "get_ocr_client"]
