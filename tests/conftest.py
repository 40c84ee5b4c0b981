"""
tests/conftest.py -- Shared test fixtures for VidTube Identity.

This module provides:
  - store: isolated in-memory UserStore per test
  - hasher / issuer: fast PasswordHasher (rounds=4) and a TokenIssuer with
    fixed test secrets
  - identity: IdentityService wired over the three above
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

DEBUG must be set before any core/auth import so get_settings() auto-generates
the token secrets in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any auth/core import.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.passwords import PasswordHasher
from auth.service import IdentityService
from auth.store import UserStore
from auth.tokens import TokenIssuer

ACCESS_SECRET = "a" * 64
REFRESH_SECRET = "r" * 64


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast; production default is 12.
    return PasswordHasher(rounds=4)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture
def identity(store: UserStore, hasher: PasswordHasher, issuer: TokenIssuer) -> IdentityService:
    return IdentityService(store=store, hasher=hasher, issuer=issuer)


def _patch_lifespan(store: UserStore, identity: IdentityService):
    """Return a lifespan that wires pre-built test objects into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = store
        app.state.identity = identity
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient backed by a fresh shared-memory store.

    Function-scoped: every test starts with an empty user table and an empty
    cookie jar.
    """
    db_url = f"sqlite:///file:test_identity_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url=db_url)
    service = IdentityService(
        store=user_store,
        hasher=PasswordHasher(rounds=4),
        issuer=TokenIssuer(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET),
    )
    app.router.lifespan_context = _patch_lifespan(user_store, service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    user_store.close()
