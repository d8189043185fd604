"""API test fixtures: the app wired to the in-memory test container."""

import pytest
from fastapi.testclient import TestClient

from docflow.api.deps import get_pipeline_container
from docflow.api.main import create_app


@pytest.fixture
def client(container):
    app = create_app()
    app.dependency_overrides[get_pipeline_container] = lambda: container
    return TestClient(app)
