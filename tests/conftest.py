"""
Shared test fixtures and configuration for entire test suite.

Provides: in-memory bus, store and object store, fake OCR, deterministic
fake embeddings, zero-backoff retry policy and a fully wired pipeline
Dependencies: pytest, langchain_core
System role: Test infrastructure and fixture management
"""

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding

from docflow.boundary.bus.memory import InMemoryTopicBus
from docflow.boundary.embeddings.client import EmbeddingClient
from docflow.boundary.object_store.memory import InMemoryObjectStore
from docflow.boundary.store.memory import InMemoryDocumentStore
from docflow.configs import Settings
from docflow.configs.bus import BusSettings
from docflow.configs.pipeline import PipelineSettings
from docflow.core.pipeline.runner import StageRunner
from docflow.core.pipeline.stages import STAGES
from docflow.dependencies import PipelineContainer
from tests.factories import EMBEDDING_DIM, FAST_RETRY, FakeOcr, Pipeline


@pytest.fixture
def pipeline_settings() -> PipelineSettings:
    """Small chunks, fake embeddings and no backoff."""
    return PipelineSettings(
        embedding_backend="fake",
        embedding_dim=EMBEDDING_DIM,
        embedding_version="v1",
        chunk_max_size=40,
        chunk_overlap=5,
        chunk_unit="tokens",
        chunk_page_aware=True,
        chunk_min_size=10,
        retry_max_attempts=3,
        retry_initial_backoff=0,
        retry_max_backoff=0,
        retry_jitter=0,
    )


@pytest.fixture
def settings(pipeline_settings) -> Settings:
    return Settings(pipeline=pipeline_settings, bus=BusSettings(partitions=2))


@pytest.fixture
def bus() -> InMemoryTopicBus:
    return InMemoryTopicBus(partitions=2)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def fake_ocr() -> FakeOcr:
    return FakeOcr()


@pytest.fixture
def embedding_client() -> EmbeddingClient:
    return EmbeddingClient(
        DeterministicFakeEmbedding(size=EMBEDDING_DIM),
        model_id=f"fake-{EMBEDDING_DIM}",
    )


@pytest.fixture
def container(settings, bus, store, object_store, fake_ocr, embedding_client) -> PipelineContainer:
    return PipelineContainer(
        settings=settings,
        bus=bus,
        store=store,
        object_store=object_store,
        ocr_client=fake_ocr,
        embedding_client=embedding_client,
        retry_policy=FAST_RETRY,
    )


@pytest.fixture
def pipeline(container, bus, store, object_store, fake_ocr) -> Pipeline:
    runners = [
        StageRunner(container.worker(stage), bus, failure_backoff=0)
        for stage in STAGES
    ]
    return Pipeline(
        container=container,
        bus=bus,
        store=store,
        object_store=object_store,
        ocr=fake_ocr,
        runners=runners,
    )
