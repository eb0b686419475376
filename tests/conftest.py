"""
Pytest configuration and fixtures
"""
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root to Python path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from submission_api.config import load_settings  # noqa: E402
from submission_api.index import create_app  # noqa: E402
from submission_api.services.auth_service import (  # noqa: E402
    CallerIdentity,
    IdentityDirectory,
    create_jwt_token,
)
from submission_api.services.code_storage import MemoryCodeStorage  # noqa: E402
from submission_api.services.memory_store import MemoryDocumentStore  # noqa: E402

from tests.constants import TEST_JWT_SECRET  # noqa: E402


@pytest.fixture
def store():
    """Empty in-memory document store"""
    return MemoryDocumentStore()


@pytest.fixture
def code_storage():
    """Empty in-memory code storage"""
    return MemoryCodeStorage()


@pytest.fixture
def identities(store):
    return IdentityDirectory(store)


@pytest.fixture
def seeded_store(store):
    """Store with two users, a visible and a hidden task"""
    store.put("users", "uid-alice", {"username": "alice", "displayName": "Alice A."})
    store.put("users", "uid-bob", {"username": "bob", "displayName": "Bob B."})
    store.put("tasks", "task-open", {"visible": True, "type": "normal", "fileName": ["main.py"]})
    store.put("tasks", "task-hidden", {"visible": False, "type": "normal", "fileName": ["main.py"]})
    store.put(
        "tasks",
        "task-multi",
        {"visible": True, "type": "interactive", "fileName": ["a.py", "b.py"]},
    )
    return store


@pytest.fixture
def alice():
    return CallerIdentity(uid="uid-alice", claims={"uid": "uid-alice"})


@pytest.fixture
def admin():
    return CallerIdentity(uid="uid-admin", claims={"uid": "uid-admin", "admin": True})


@pytest.fixture
def make_token():
    """Factory signing a JWT for ``uid`` with the test secret"""
    def _make(uid, **claims):
        return create_jwt_token({"uid": uid, **claims}, TEST_JWT_SECRET)
    return _make


@pytest.fixture
def app(seeded_store, code_storage):
    return create_app(
        load_settings(),
        store=seeded_store,
        code_storage=code_storage,
        jwt_secret=TEST_JWT_SECRET,
    )


@pytest.fixture
def client(app):
    """Create a test client"""
    return TestClient(app)
