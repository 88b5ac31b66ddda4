"""
Shared fixtures for CareBoard tests.
"""

import pytest
from fastapi.testclient import TestClient

from app.core.analysis_client import get_analysis_client
from app.main import app
from app.services.record_store import get_record_store
from tests.helpers import SpyRecordStore, StubAnalysisClient, make_png


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def store():
    spy = SpyRecordStore()
    yield spy
    spy.close()


@pytest.fixture
def stub_client():
    return StubAnalysisClient()


@pytest.fixture
def user(store):
    return store.create_user("Jane Doe", 42, "Lagos", "jane@example.com")


@pytest.fixture
def record(store, user):
    return store.create_record(user, "Oncology")


@pytest.fixture
def client(store, stub_client):
    """Test client wired to the in-memory store and stub model."""
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_analysis_client] = lambda: stub_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"X-User-Email": "jane@example.com"}
