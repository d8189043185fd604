"""
Stage workers.

Exports: StageWorker, IngestWorker, OcrWorker, ChunkerWorker, EmbedderWorker, IndexerWorker
"""

from .base import StageResult, StageWorker
from .chunker import ChunkerWorker
from .embedder import EmbedderWorker
from .indexer import IndexerWorker
from .ingest import IngestWorker
from .ocr import OcrWorker

STAGES = ("ocr", "chunker", "embedder", "indexer")

__all__ = [
    "STAGES",
    "ChunkerWorker",
    "EmbedderWorker",
    "IndexerWorker",
    "IngestWorker",
    "OcrWorker",
    "StageResult",
    "StageWorker",
]
