"""
Dependency container.

Builds bus, store, collaborators, stage workers and the retrieval
service from settings, once, on first access. Shared by the HTTP API
and the CLI.

Dependencies: docflow.configs, docflow.boundary, docflow.core
System role: DI container for service injection
"""

from docflow.configs import Settings, get_settings
from docflow.core.pipeline.retry import RetryPolicy


class PipelineContainer:
    """Container for cached service instances."""

    def __init__(
        self,
        settings: Settings | None = None,
        bus=None,
        store=None,
        object_store=None,
        ocr_client=None,
        embedding_client=None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """
        Initialize container.

        Any collaborator passed in is used as-is instead of being built
        from settings.

        Args:
            settings: Application settings (defaults to get_settings())
            bus: Topic bus
            store: Document store
            object_store: Source object storage
            ocr_client: OCR collaborator
            embedding_client: Embedding collaborator
            retry_policy: Backoff policy for every worker
        """
        self._settings = settings
        self._bus = bus
        self._store = store
        self._object_store = object_store
        self._ocr_client = ocr_client
        self._embedding_client = embedding_client
        self._retry_policy = retry_policy
        self._workers: dict = {}
        self._retrieval_service = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def bus(self):
        """Get cached topic bus."""
        if self._bus is None:
            from docflow.boundary.bus import get_bus
            self._bus = get_bus(self.settings.bus)
        return self._bus

    @property
    def store(self):
        """Get cached document store."""
        if self._store is None:
            from docflow.boundary.store import get_document_store
            self._store = get_document_store(self.settings.store)
        return self._store

    @property
    def object_store(self):
        """Get cached provider router."""
        if self._object_store is None:
            from docflow.boundary.object_store import build_object_store
            self._object_store = build_object_store(self.settings.object_storage)
        return self._object_store

    @property
    def ocr_client(self):
        """Get cached OCR client."""
        if self._ocr_client is None:
            from docflow.boundary.ocr import get_ocr_client
            self._ocr_client = get_ocr_client(self.settings.pipeline)
        return self._ocr_client

    @property
    def embedding_client(self):
        """Get cached embedding client."""
        if self._embedding_client is None:
            from docflow.boundary.embeddings import get_embedding_client
            self._embedding_client = get_embedding_client(self.settings.pipeline)
        return self._embedding_client

    @property
    def retry_policy(self) -> RetryPolicy:
        if self._retry_policy is None:
            self._retry_policy = RetryPolicy.from_settings(self.settings.pipeline)
        return self._retry_policy

    def worker(self, stage: str):
        """
        Get cached stage worker by name.

        Args:
            stage: ingest, ocr, chunker, embedder or indexer

        Returns:
            StageWorker: Worker wired to the shared bus and store

        Raises:
            ValueError: Unknown stage
        """
        if stage not in self._workers:
            self._workers[stage] = self._build_worker(stage)
        return self._workers[stage]

    def _build_worker(self, stage: str):
        from docflow.core.pipeline.chunking import ChunkingPolicy, PageAwareChunker
        from docflow.core.pipeline.stages import (
            ChunkerWorker,
            EmbedderWorker,
            IndexerWorker,
            IngestWorker,
            OcrWorker,
        )

        pipeline = self.settings.pipeline
        shared = {"store": self.store, "bus": self.bus, "retry_policy": self.retry_policy}
        if stage == "ingest":
            return IngestWorker(object_store=self.object_store, **shared)
        if stage == "ocr":
            return OcrWorker(object_store=self.object_store, ocr_client=self.ocr_client, **shared)
        if stage == "chunker":
            chunker = PageAwareChunker(ChunkingPolicy.from_settings(pipeline))
            return ChunkerWorker(chunker=chunker, **shared)
        if stage == "embedder":
            return EmbedderWorker(
                embedding_client=self.embedding_client,
                embedding_dim=pipeline.embedding_dim,
                embedding_version=pipeline.embedding_version,
                batch_size=pipeline.embedding_batch_size,
                **shared,
            )
        if stage == "indexer":
            return IndexerWorker(**shared)
        raise ValueError(f"Unknown stage: {stage}")

    def runner(self, stage: str, concurrency: int | None = None):
        """Build a StageRunner for a consuming stage."""
        from docflow.core.pipeline.runner import StageRunner

        bus_settings = self.settings.bus
        if bus_settings.backend == "sqs":
            poll_timeout = float(bus_settings.wait_time_seconds)
        else:
            poll_timeout = bus_settings.poll_interval
        return StageRunner(
            self.worker(stage),
            self.bus,
            concurrency=concurrency,
            poll_timeout=poll_timeout,
        )

    @property
    def retrieval_service(self):
        """Get cached retrieval service."""
        if self._retrieval_service is None:
            from docflow.core.retrieval import RetrievalService
            self._retrieval_service = RetrievalService(
                store=self.store,
                embedding_client=self.embedding_client,
                embedding_dim=self.settings.pipeline.embedding_dim,
                max_k=self.settings.api.max_k,
            )
        return self._retrieval_service

    def clear(self) -> None:
        """Drop cached instances built from settings."""
        self._bus = None
        self._store = None
        self._object_store = None
        self._ocr_client = None
        self._embedding_client = None
        self._workers = {}
        self._retrieval_service = None


# Global service cache
_container = PipelineContainer()


def get_container() -> PipelineContainer:
    """Get container singleton."""
    return _container
