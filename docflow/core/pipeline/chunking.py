"""
Page-aware deterministic chunking.

Splits OCR output into an ordered list of Chunk candidates. Pages are
grouped into segments first: a page (or run of pages) shorter than the
minimum chunk size is merged with the next page, and a short trailing
run merges into the previous segment. Each segment is split with
RecursiveCharacterTextSplitter, so a chunk only spans a page break when
the pages were merged. Output depends only on the OCR result and the
policy, which keeps chunk ids stable across re-chunking.

Dependencies: langchain_text_splitters, docflow.core.pipeline.ids
System role: Transformation step of the Chunker stage
"""

import bisect
from dataclasses import dataclass
from typing import Callable, Literal

from langchain_text_splitters import RecursiveCharacterTextSplitter

from docflow.configs.pipeline import PipelineSettings
from docflow.core.pipeline.ids import compute_chunk_id
from docflow.core.pipeline.models.chunk import Chunk
from docflow.core.pipeline.models.ocr import OcrPage, OcrResult

PAGE_SEPARATOR = "\n\n"
TITLE_BLOCK_TYPES = frozenset({"title", "heading", "section_header", "header"})


def token_length(text: str) -> int:
    """Whitespace token count."""
    return len(text.split())


@dataclass(frozen=True)
class ChunkingPolicy:
    """Chunking configuration. max_size and overlap are measured in unit."""

    max_size: int = 1000
    overlap: int = 200
    unit: Literal["chars", "tokens"] = "chars"
    page_aware: bool = True
    min_chunk_size: int = 50

    def __post_init__(self) -> None:
        if self.max_size <= 0:
            raise ValueError("max_size must be positive")
        if not 0 <= self.overlap < self.max_size:
            raise ValueError("overlap must be >= 0 and smaller than max_size")

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "ChunkingPolicy":
        return cls(
            max_size=settings.chunk_max_size,
            overlap=settings.chunk_overlap,
            unit=settings.chunk_unit,
            page_aware=settings.chunk_page_aware,
            min_chunk_size=settings.chunk_min_size,
        )

    @property
    def length_function(self) -> Callable[[str], int]:
        return token_length if self.unit == "tokens" else len

    @property
    def fingerprint(self) -> str:
        """Compact description stored on each chunk's metadata."""
        return (
            f"{self.unit}:{self.max_size}/{self.overlap}"
            f":{'page' if self.page_aware else 'flat'}:{self.min_chunk_size}"
        )


def _locate(text: str, piece: str, prev_start: int | None, prev_end: int | None) -> int:
    """
    Offset of a splitter piece inside its segment.

    Pieces come back in order and each starts after the previous one, so the
    search begins one past the previous start. Repeated passages (identical
    pages, boilerplate) then resolve to the occurrence following the
    previous piece instead of the first one in the segment.
    """
    if prev_start is None:
        found = text.find(piece)
        return found if found >= 0 else 0
    found = text.find(piece, prev_start + 1)
    if found >= 0:
        return found
    # Piece text differs from the source (stripped separators)
    return min(prev_end if prev_end is not None else prev_start + 1, len(text))


@dataclass
class _Segment:
    pages: list[OcrPage]
    text: str
    offsets: list[int]


class PageAwareChunker:
    """Split OCR pages into chunks under a ChunkingPolicy."""

    def __init__(self, policy: ChunkingPolicy) -> None:
        """
        Initialize chunker with splitter configuration.

        Args:
            policy: Size, overlap, unit and page handling
        """
        self._policy = policy
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=policy.max_size,
            chunk_overlap=policy.overlap,
            add_start_index=False,
            length_function=policy.length_function,
        )

    @property
    def policy(self) -> ChunkingPolicy:
        return self._policy

    def chunk(self, doc_id: str, ocr: OcrResult) -> list[Chunk]:
        """
        Produce the ordered chunk set for a document.

        Args:
            doc_id: Owning document id
            ocr: OCR output

        Returns:
            list[Chunk]: Chunks in document order with deterministic ids
        """
        chunks: list[Chunk] = []
        last_title: str | None = None
        for segment in self._segments(ocr.ordered_pages()):
            if not segment.text.strip():
                continue
            prev_start: int | None = None
            prev_end: int | None = None
            for text in self._splitter.split_text(segment.text):
                start = _locate(segment.text, text, prev_start, prev_end)
                end = start + len(text)
                prev_start = start

                first = bisect.bisect_right(segment.offsets, start) - 1
                last = bisect.bisect_right(segment.offsets, max(start, end - 1)) - 1
                span = segment.pages[first:last + 1]

                overlap = 0
                if prev_end is not None and prev_end > start:
                    overlap = self._policy.length_function(segment.text[start:prev_end])
                prev_end = end

                layout_types = sorted({
                    block.type
                    for page in span
                    for block in (page.layout_blocks or [])
                })
                titles = [
                    block.text
                    for page in span
                    for block in (page.layout_blocks or [])
                    if block.type in TITLE_BLOCK_TYPES and block.text
                ]
                section_title = titles[0] if titles else last_title
                if titles:
                    last_title = titles[-1]

                page_start, page_end = span[0].page_no, span[-1].page_no
                sequence_index = len(chunks)
                chunks.append(
                    Chunk(
                        chunk_id=compute_chunk_id(doc_id, page_start, page_end, sequence_index, text),
                        doc_id=doc_id,
                        page_start=page_start,
                        page_end=page_end,
                        sequence_index=sequence_index,
                        chunk_text=text,
                        metadata={
                            "pages": [p.page_no for p in span],
                            "layout_types": layout_types,
                            "section_title": section_title,
                            "has_table": "table" in layout_types,
                            "overlap": overlap,
                            "overlap_unit": self._policy.unit,
                            "chunking_policy": self._policy.fingerprint,
                        },
                    )
                )
        return chunks

    def _segments(self, pages: list[OcrPage]) -> list[_Segment]:
        if not pages:
            return []
        if not self._policy.page_aware:
            return [self._build_segment(pages)]

        groups: list[list[OcrPage]] = []
        current: list[OcrPage] = []
        for page in pages:
            current.append(page)
            if self._size(current) >= self._policy.min_chunk_size:
                groups.append(current)
                current = []
        if current:
            if groups:
                groups[-1].extend(current)
            else:
                groups.append(current)
        return [self._build_segment(group) for group in groups]

    def _size(self, pages: list[OcrPage]) -> int:
        return self._policy.length_function(PAGE_SEPARATOR.join(p.text.strip() for p in pages))

    @staticmethod
    def _build_segment(pages: list[OcrPage]) -> _Segment:
        offsets: list[int] = []
        parts: list[str] = []
        cursor = 0
        for page in pages:
            text = page.text.strip()
            offsets.append(cursor)
            parts.append(text)
            cursor += len(text) + len(PAGE_SEPARATOR)
        return _Segment(pages=pages, text=PAGE_SEPARATOR.join(parts), offsets=offsets)
