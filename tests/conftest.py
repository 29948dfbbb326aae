"""
tests/conftest.py -- Shared test fixtures for ExamBank.

This module provides:
  - _make_test_store(): an isolated named shared-memory SQLite UserStore
  - _patch_lifespan(): wires a test store and registry into app.state,
    bypassing the real startup
  - store / registry / client: fresh per test, so sessions and users never
    leak between tests
  - alice: a registered student with known credentials

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

BCRYPT_ROUNDS must be set before any auth import: auth/tokens.py reads the
cost at module load and hashes its timing dummy immediately.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# Set before any auth/core import so get_settings() sees them.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite:///file:exambank_unused?mode=memory&cache=shared&uri=true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.sessions import SessionRegistry
from auth.store import UserStore
from auth.tokens import hash_password

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_test_store() -> UserStore:
    """Create a UserStore on a uniquely named shared-memory database."""
    return UserStore(db_url=f"sqlite:///file:test_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore, registry: SessionRegistry):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.sessions = registry
        yield

    return test_lifespan


@dataclass
class Account:
    id: int
    username: str
    password: str
    real_name: str
    role: str


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = _make_test_store()
    yield s
    s.close()


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def client(store: UserStore, registry: SessionRegistry) -> Generator[TestClient, None, None]:
    """TestClient on the real app with an isolated store and registry.

    raise_server_exceptions=False so 500 responses can be asserted on instead
    of surfacing as test errors.
    """
    app.router.lifespan_context = _patch_lifespan(store, registry)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def alice(store: UserStore) -> Account:
    """A stored student account: alice / longenough1."""
    password = "longenough1"
    uid = store.create_user(
        User(
            username="alice",
            role="student",
            real_name="Alice A",
            hashed_password=hash_password(password),
        )
    )
    return Account(id=uid, username="alice", password=password, real_name="Alice A", role="student")
