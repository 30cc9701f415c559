"""Shared test fixtures."""

import os
import tempfile
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient


# Settings are cached on first use; keep tests away from real services and logs
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="lawcomments-logs-"))
os.environ.setdefault("LOG_REQUESTS", "false")

from lawcomments.auth.security import create_access_token  # noqa: E402
from lawcomments.main import app  # noqa: E402


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client without lifespan: no Cassandra or Redis connections."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_token() -> str:
    return create_access_token(
        {"sub": "admin-1", "email": "admin@example.org", "role": "admin"}
    )


@pytest.fixture
def user_token() -> str:
    return create_access_token(
        {"sub": "user-1", "email": "user@example.org", "role": "user"}
    )
