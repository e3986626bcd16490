"""Shared test fixtures for the ncloud backend test suite.

Tests run against an in-memory SQLite database (one shared connection via
StaticPool), a per-test storage root under ``tmp_path``, and a recording
search index double. Each test starts from empty tables.
"""

import os

# Configure the app before any imports read settings.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FORMAT"] = "text"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["CAPABILITY_SECRET_KEY"] = "test-capability-secret"
os.environ["SEARCH_URL"] = ""
os.environ["STORAGE_ROOT"] = os.environ.get("TEST_STORAGE_ROOT", "/tmp/ncloud-test-storage")

from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from ncloud.core.capability import CapabilityCodec, get_codec
from ncloud.core.config import settings
from ncloud.core.token_factory import create_token
from ncloud.database import SessionLocal, get_db, init_db
from ncloud.main import app
from ncloud.models import Directory, File
from ncloud.services.namespace_service import NamespaceService
from ncloud.services.search_index import get_search_index
from ncloud.services.storage import DiskStorage, get_storage

USER = "alice"
OTHER_USER = "mallory"


class RecordingSearchIndex:
    """In-memory search index that records every call.

    ``fail`` names methods that should raise a connection error, to exercise
    the log-and-continue policy.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.documents: Dict[str, Dict[str, Dict[str, Any]]] = {"directories": {}, "files": {}}
        self.fail: set = set()

    def _maybe_fail(self, method: str) -> None:
        if method in self.fail:
            raise httpx.ConnectError(f"search index down ({method})")

    def upsert(self, index, documents):
        self.calls.append(("upsert", index, [dict(d) for d in documents]))
        self._maybe_fail("upsert")
        for doc in documents:
            self.documents[index].setdefault(doc["_id"], {}).update(doc)

    def delete(self, index, ids):
        self.calls.append(("delete", index, list(ids)))
        self._maybe_fail("delete")
        for doc_id in ids:
            self.documents[index].pop(doc_id, None)

    def delete_by_parents(self, index, parent_ids):
        self.calls.append(("delete_by_parents", index, list(parent_ids)))
        self._maybe_fail("delete_by_parents")
        parents = set(parent_ids)
        for doc_id in [k for k, v in self.documents[index].items() if v.get("parent_directory") in parents]:
            del self.documents[index][doc_id]

    def search(self, index, query, filters):
        self.calls.append(("search", index, query, dict(filters)))
        self._maybe_fail("search")
        return [
            doc for doc in self.documents[index].values()
            if query.lower() in doc.get("name", "").lower()
            and all(doc.get(k) == v for k, v in filters.items())
        ]

    def calls_for(self, method: str, index: Optional[str] = None) -> List[tuple]:
        return [c for c in self.calls if c[0] == method and (index is None or c[1] == index)]


@pytest.fixture(autouse=True)
def _clean_tables():
    """Create tables if needed and empty them before each test."""
    init_db()
    db = SessionLocal()
    try:
        db.query(File).delete()
        db.query(Directory).delete()
        db.commit()
    finally:
        db.close()
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def codec() -> CapabilityCodec:
    return CapabilityCodec(settings.capability_secret_key)


@pytest.fixture()
def search_index() -> RecordingSearchIndex:
    return RecordingSearchIndex()


@pytest.fixture()
def storage(tmp_path) -> DiskStorage:
    return DiskStorage(str(tmp_path / "storage"))


@pytest.fixture()
def service(db, codec, search_index, storage) -> NamespaceService:
    return NamespaceService(db, codec, search_index, storage)


@pytest.fixture()
def roots(service) -> Dict[str, Directory]:
    """Main and Trash for the default test user."""
    return service.provision_user_roots(USER)


@pytest.fixture()
def main(roots) -> Directory:
    return roots["Main"]


@pytest.fixture()
def trash(roots) -> Directory:
    return roots["Trash"]


@pytest.fixture()
def make_dir(service):
    """Factory: create a directory under *parent* for the default user."""

    def _make(parent: Directory, name: str, user: str = USER) -> Directory:
        return service.create_directory(user, parent.id, parent.access_key, name)

    return _make


@pytest.fixture()
def make_file(service, storage):
    """Factory: register a file under *parent* and write its content to disk."""

    def _make(parent: Directory, name: str, content: bytes = b"data", user: str = USER) -> File:
        file = service.register_file(
            user, parent.id, parent.access_key, name, type="text/plain", size=len(content)
        )
        path = storage.file_path(parent.id, file.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return file

    return _make


@pytest.fixture()
def client(db, codec, search_index, storage):
    """FastAPI TestClient with store dependencies overridden for the test."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_codec] = lambda: codec
    app.dependency_overrides[get_search_index] = lambda: search_index
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers() -> dict:
    """Valid access-token headers for the default test user."""
    token = create_token(subject=USER, secret=settings.jwt_secret_key)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def find_dir(db):
    """Fresh lookup of a directory row, None when it no longer exists."""

    def _find(directory_id: str) -> Optional[Directory]:
        return db.query(Directory).filter(Directory.id == directory_id).first()

    return _find


@pytest.fixture()
def find_file(db):
    """Fresh lookup of a file row, None when it no longer exists."""

    def _find(file_id: str) -> Optional[File]:
        return db.query(File).filter(File.id == file_id).first()

    return _find
