"""
tests/conftest.py -- Shared test fixtures for Conduit unit and integration tests.

This module provides:
  - engine / user_store / graph / hasher / tokens / auth_flow / profiles:
    the core wired over a private in-memory SQLite database per test
  - make_user(): helper fixture that registers a user straight through the store
  - api_client: TestClient over the real FastAPI app with an isolated database

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Each api_client gets its own database name so tests do not
see each other's users.

The DEBUG env var must be set before any application import so
get_settings() auto-generates SECRET_KEY instead of raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any core/auth import.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app, build_state
from auth.models import User
from auth.passwords import PasswordHasher
from auth.service import AuthFlow
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings
from core.db import make_engine
from social.profiles import ProfileResolver
from social.store import FollowGraph

TEST_SECRET = "test-secret-key-0123456789abcdef0123456789"


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    eng = make_engine("sqlite:///:memory:")
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def graph(engine) -> FollowGraph:
    return FollowGraph(engine)


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(max_concurrent=4)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(secret_key=TEST_SECRET)


@pytest.fixture
def auth_flow(user_store, hasher, tokens) -> AuthFlow:
    return AuthFlow(user_store, hasher, tokens)


@pytest.fixture
def profiles(user_store, graph) -> ProfileResolver:
    return ProfileResolver(user_store, graph)


@pytest.fixture
def make_user(user_store) -> Callable[..., User]:
    """Insert a user directly through the store, skipping bcrypt.

    The stored digest is a placeholder -- use auth_flow.register() in tests
    that need to log in.
    """

    def _make(username: str, email: str | None = None, **extra) -> User:
        return user_store.create(
            User(
                email=email or f"{username}@x.com",
                username=username,
                password_hash="not-a-real-digest",
                **extra,
            )
        )

    return _make


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(engine, settings: Settings):
    """Return a lifespan that wires the test engine instead of the real database."""

    @asynccontextmanager
    async def test_lifespan(app):
        build_state(app, engine, settings)
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app backed by a fresh shared-memory DB."""
    db_url = f"sqlite:///file:test_conduit_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    eng = make_engine(db_url)
    settings = Settings(debug=True, secret_key=TEST_SECRET, token_expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(eng, settings)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    eng.dispose()
