"""
Pytest configuration and fixtures
"""

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.main import app
from app.services.upload_store import upload_store


@pytest.fixture
def repository(tmp_path):
    """Empty directory used as the encrypted temp file repository."""
    repo = tmp_path / "repository"
    repo.mkdir()
    return repo


@pytest.fixture
def app_repository(repository, monkeypatch):
    """Point the service's upload store and cleanup sweep at a temp repository."""
    monkeypatch.setattr(settings, "UPLOAD_REPOSITORY", str(repository))
    monkeypatch.setattr(settings, "UPLOAD_SIZE_THRESHOLD", 1024)
    monkeypatch.setattr(upload_store.factory, "repository", repository)
    monkeypatch.setattr(upload_store.factory, "size_threshold", 1024)
    yield repository
    upload_store.clear()


@pytest.fixture
def client(app_repository):
    """FastAPI test client fixture"""
    return TestClient(app)
