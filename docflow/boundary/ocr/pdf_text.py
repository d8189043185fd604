"""
Text-layer OCR backend using pypdf.

Extracts the embedded text layer of born-digital PDFs without calling a
model endpoint. Scanned pages come back empty.

Dependencies: pypdf
System role: Local OCR collaborator
"""

import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from docflow.core.exceptions import OcrUnsupportedInput
from docflow.core.pipeline.models.ocr import OcrPage, OcrResult

logger = logging.getLogger(__name__)


class PdfTextOcr:
    """OCR collaborator backed by pypdf text extraction."""

    model = "pypdf-text"

    def ocr(self, pdf_bytes: bytes) -> OcrResult:
        """
        Extract per-page text.

        Args:
            pdf_bytes: Raw PDF content

        Returns:
            OcrResult: One OcrPage per PDF page

        Raises:
            OcrUnsupportedInput: Bytes are not a readable, unencrypted PDF
        """
        try:
            reader = PdfReader(io.BytesIO(pdf_bytes))
            if reader.is_encrypted:
                raise OcrUnsupportedInput("Encrypted PDFs are not supported")
            pages = [
                OcrPage(page_no=index + 1, text=page.extract_text() or "")
                for index, page in enumerate(reader.pages)
            ]
        except (PdfReadError, ValueError) as e:
            raise OcrUnsupportedInput(
                f"Unreadable PDF: {e}", details={"bytes": len(pdf_bytes)}
            ) from e

        logger.info(f"{__name__}:ocr - Extracted text from {len(pages)} pages")
        return OcrResult(pages=pages, model=self.model)
