"""
tests/conftest.py -- Shared test fixtures for the donation portal.

This module provides:
  - settings / user_store / donation_store: isolated in-memory building blocks
  - credentials / lifecycle: services wired from those blocks
  - api_client: TestClient over the real app with a patched lifespan
  - signup() / bearer(): helpers for API tests

Design: API tests use named shared-memory SQLite URIs (not plain :memory:)
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.
Each api_client gets a uuid-suffixed name so tests never see each other's rows.

Environment must be set before any app import:
  DEBUG=true               -- get_settings() auto-generates SECRET_KEY
  RATE_LIMIT_ENABLED=false -- repeated logins from "testclient" are not throttled
  ALLOWED_HOSTS            -- TestClient sends Host: testserver
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import CredentialService
from auth.store import UserStore
from contact.store import ContactStore
from core.config import Settings, get_settings
from donations.lifecycle import DonationLifecycle
from donations.store import DonationStore

TEST_SECRET = "test-signing-secret-0123456789abcdef"


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(secret_key=TEST_SECRET, token_key_id="v1", debug=False)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def donation_store() -> Generator[DonationStore, None, None]:
    store = DonationStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def credentials(user_store: UserStore, settings: Settings) -> CredentialService:
    return CredentialService(user_store, settings)


@pytest.fixture
def lifecycle(donation_store: DonationStore, user_store: UserStore) -> DonationLifecycle:
    return DonationLifecycle(donation_store, user_store)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, donation_store: DonationStore, contact_store: ContactStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see an
    isolated database rather than the configured DATABASE_URL.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.donation_store = donation_store
        app.state.contact_store = contact_store
        app.state.credentials = CredentialService(user_store, get_settings())
        app.state.donations = DonationLifecycle(donation_store, user_store)
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient backed by a fresh shared-memory database."""
    db_url = f"sqlite:///file:test_portal_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url)
    donation_store = DonationStore(db_url)
    contact_store = ContactStore(db_url)

    app.router.lifespan_context = _patch_lifespan(user_store, donation_store, contact_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    contact_store.close()
    donation_store.close()
    user_store.close()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def signup(client: TestClient, email: str, password: str = "pw123", role: str = "donor", **profile) -> str:
    """Register through the API and return the issued token."""
    resp = client.post("/api/auth/signup", json={"email": email, "password": password, "role": role, **profile})
    assert resp.status_code == 201, f"signup failed: {resp.status_code} {resp.text}"
    return resp.json()["token"]


VALID_DONATION = {
    "type": "blood",
    "hospital": "City Hosp",
    "preferredDate": "2025-01-01",
    "time": "10:00",
}
