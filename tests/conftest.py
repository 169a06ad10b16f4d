"""Shared fixtures for the roster test-suite."""

import os
import tempfile

# The application module builds a default app at import time.
os.environ.setdefault("ROSTER_DATA_DIR", tempfile.mkdtemp(prefix="roster-tests-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from roster.catalog.kinds import ACTORS, ARTISTS  # noqa: E402
from roster.catalog.service import CatalogService  # noqa: E402
from roster.main import create_app  # noqa: E402
from roster.models import Upload  # noqa: E402
from roster.storage import FileBlobStore, JsonDocumentStore  # noqa: E402


@pytest.fixture
def blobs(tmp_path):
    return FileBlobStore(tmp_path / "blobs")


@pytest.fixture
def documents(tmp_path):
    return JsonDocumentStore(tmp_path / "documents")


@pytest.fixture
def artists(documents, blobs):
    return CatalogService(ARTISTS, documents, blobs)


@pytest.fixture
def actors(documents, blobs):
    return CatalogService(ACTORS, documents, blobs)


@pytest.fixture
def jpeg():
    """Factory for small fake image uploads."""
    def make(name="a.jpg", data=b"\xff\xd8fake-jpeg", content_type="image/jpeg"):
        return Upload(filename=name, data=data, content_type=content_type)
    return make


@pytest.fixture
def client(tmp_path):
    app = create_app(tmp_path / "data")
    with TestClient(app) as test_client:
        yield test_client
