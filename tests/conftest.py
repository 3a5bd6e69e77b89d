"""
tests/conftest.py -- Shared test fixtures for Inkwell integration tests.

This module provides:
  - FakeIdentityService / identity: scripts what the remote verify endpoint
    answers, by standing in for the verifier's requests.Session
  - note_store: isolated in-memory NoteStore
  - client: TestClient (follow_redirects=False) against the full ASGI app
    (API + web router) with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

Env vars must be set before any app import: get_settings() is cached on first
call and several modules read it at import time.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import Any, Optional
from unittest.mock import MagicMock

# CRITICAL: Set these before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("API_TOKEN", "test-api-token")
os.environ.setdefault("SITE_TOKEN", "test-site-token")
os.environ.setdefault("VERIFY_URL", "https://identity.test/v1/verify")
os.environ.setdefault("SIGNIN_RATE_LIMIT", "1000/minute")

import pytest
import requests
from fastapi.testclient import TestClient
from slowapi.errors import RateLimitExceeded

from api.limiter import limiter
from asgi import app
from auth.verifier import TokenVerifier, VerifierConfig
from notes.store import NoteStore

VERIFY_URL = "https://identity.test/v1/verify"


# ---------------------------------------------------------------------------
# Remote identity service stand-in
# ---------------------------------------------------------------------------


def make_response(status_code: int, payload: Any = None, text: str = "") -> MagicMock:
    """Build a requests.Response look-alike.

    payload may be an Exception instance, in which case resp.json() raises it.
    """
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


class FakeIdentityService:
    """Scripted replacement for the verifier's HTTP session.

    http is the MagicMock handed to TokenVerifier; its post() calls are
    recorded so tests can assert on URL, body and credentials.
    """

    def __init__(self) -> None:
        self.http = MagicMock(spec=requests.Session)
        self.reject(401)

    def accept(self, persona_id: str) -> None:
        self.http.post.side_effect = None
        self.http.post.return_value = make_response(200, {"persona": {"id": persona_id}})

    def reject(self, status_code: int = 401, text: str = "{}") -> None:
        self.http.post.side_effect = None
        self.http.post.return_value = make_response(status_code, {}, text=text)

    def respond(self, status_code: int, payload: Any = None, text: str = "") -> None:
        self.http.post.side_effect = None
        self.http.post.return_value = make_response(status_code, payload, text=text)

    def fail(self, exc: Exception) -> None:
        self.http.post.side_effect = exc

    @property
    def calls(self) -> int:
        return self.http.post.call_count

    def last_call(self) -> tuple[tuple, dict]:
        args, kwargs = self.http.post.call_args
        return args, kwargs


def make_verifier(identity: FakeIdentityService, api_token: str = "test-api-token") -> TokenVerifier:
    config = VerifierConfig(
        site_token="test-site-token",
        api_token=api_token,
        verify_url=VERIFY_URL,
        timeout_seconds=5.0,
    )
    return TokenVerifier(config, session=identity.http)


@pytest.fixture
def identity() -> FakeIdentityService:
    return FakeIdentityService()


@pytest.fixture
def verifier(identity: FakeIdentityService) -> TokenVerifier:
    return make_verifier(identity)


# ---------------------------------------------------------------------------
# Store and app fixtures
# ---------------------------------------------------------------------------


def _shared_memory_url(label: str) -> str:
    return f"sqlite:///file:test_{label}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


@pytest.fixture
def note_store() -> Generator[NoteStore, None, None]:
    store = NoteStore(_shared_memory_url("notes"))
    yield store
    store.close()


def _patch_lifespan(store: NoteStore, verifier: TokenVerifier):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and a verifier backed by FakeIdentityService into
    app.state so no test ever touches a real database file or the network.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.notes = store
        app.state.verifier = verifier
        yield

    return test_lifespan


@pytest.fixture
def client(note_store: NoteStore, verifier: TokenVerifier) -> Generator[TestClient, None, None]:
    """Yield a TestClient with a fresh cookie jar and isolated state.

    Function-scoped because the session lives in the client's cookie jar --
    sharing a client would leak sign-ins between tests.

    follow_redirects=False: web tests assert on redirect Location headers,
    which are invisible once the client follows them. base_url uses
    localhost so TrustedHostMiddleware accepts the Host header.
    """
    limiter.reset()
    app.router.lifespan_context = _patch_lifespan(note_store, verifier)
    with TestClient(app, base_url="http://localhost", follow_redirects=False) as c:
        yield c


@pytest.fixture
def sign_in_as(client: TestClient, identity: FakeIdentityService):
    """Return a callable that signs the client in as a persona via the JSON endpoint."""

    def _sign_in(persona_id: str, token: Optional[str] = None):
        identity.accept(persona_id)
        return client.post("/api/v1/auth/signin", json={"token": token or f"tok_{persona_id}"})

    return _sign_in


@pytest.fixture
def signed_in(client: TestClient, sign_in_as) -> TestClient:
    """A client whose session already belongs to persona p_123."""
    resp = sign_in_as("p_123")
    assert resp.status_code == 200
    return client


@pytest.fixture
def rate_limit_error() -> RateLimitExceeded:
    """The exception slowapi raises once SIGNIN_LIMIT is used up."""
    return RateLimitExceeded(MagicMock(error_message="10 per 1 minute"))
