"""
OCR artifact models.

Shape of the OCR collaborator response, persisted per document as a
side artifact keyed by doc_id.

Dependencies: pydantic
System role: OCR output consumed by the chunker
"""

from pydantic import BaseModel, Field


class LayoutBlock(BaseModel):
    """Structural hint returned by the OCR model."""

    type: str = Field(description="Block type (paragraph, title, table, ...)")
    text: str | None = Field(default=None)
    bbox: list[float] | None = Field(default=None, description="x0, y0, x1, y1")


class OcrPage(BaseModel):
    """Extracted text of a single page."""

    page_no: int = Field(ge=1, description="1-based page number")
    text: str = Field(default="")
    layout_blocks: list[LayoutBlock] | None = Field(default=None)


class OcrResult(BaseModel):
    """Full OCR output for a document."""

    pages: list[OcrPage] = Field(default_factory=list)
    model: str | None = Field(default=None, description="OCR model or backend identifier")

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def ordered_pages(self) -> list[OcrPage]:
        """Pages sorted by page number."""
        return sorted(self.pages, key=lambda p: p.page_no)
