"""
tests/conftest.py -- Shared test fixtures for PitchMatch integration tests.

This module provides:
  - make_test_stores(): isolated in-memory DBs for users + pitches
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus seeded founder / investor / community accounts

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. Each fixture gets a unique name so test modules never share rows.

The DEBUG env var must be set before any auth module import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from unittest.mock import MagicMock

# Set DEBUG before any auth/core import.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password, issue_token_for
from market.models import Pitch
from market.store import PitchStore

# Rate limits are shared process-wide; they would trip across test modules.
limiter.enabled = False

PASSWORD = "secret123"


@dataclass
class Account:
    id: int
    email: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@dataclass
class ApiContext:
    client: TestClient
    user_store: UserStore
    pitch_store: PitchStore
    founder: Account
    investor: Account
    community: Account
    pitch_id: int


def make_test_stores(db_suffix: str) -> tuple[UserStore, PitchStore]:
    """Create named shared-memory SQLite stores unique to one fixture instance."""
    tag = f"{db_suffix}_{uuid.uuid4().hex}"
    user_store = UserStore(f"sqlite:///file:test_auth_{tag}?mode=memory&cache=shared&uri=true")
    pitch_store = PitchStore(f"sqlite:///file:test_market_{tag}?mode=memory&cache=shared&uri=true")
    return user_store, pitch_store


def seed_account(store: UserStore, name: str, email: str, role: str) -> Account:
    uid = store.create_user(User(name=name, email=email, role=role, hashed_password=hash_password(PASSWORD)))
    return Account(id=uid, email=email, token=issue_token_for(store.get_by_id(uid)))


def _patch_lifespan(user_store: UserStore, pitch_store: PitchStore):
    """Return a lifespan that installs pre-created test stores in app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.pitch_store = pitch_store
        app.state.oauth = MagicMock()
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[ApiContext, None, None]:
    """Yield an ApiContext with one account per role and one founder pitch.

    Module-scoped for speed; tests that mutate state create their own
    accounts or pitches rather than editing the seeded ones.
    """
    user_store, pitch_store = make_test_stores("api")

    founder = seed_account(user_store, "Fay Founder", "founder@example.com", "founder")
    investor = seed_account(user_store, "Ivan Investor", "investor@example.com", "investor")
    community = seed_account(user_store, "Cam Community", "community@example.com", "community")
    pitch_id = pitch_store.create_pitch(
        Pitch(
            name="SolarGrid",
            description="Peer-to-peer solar energy trading.",
            industry="Energy",
            stage="Seed",
            founder_id=founder.id,
        )
    )

    app.router.lifespan_context = _patch_lifespan(user_store, pitch_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            user_store=user_store,
            pitch_store=pitch_store,
            founder=founder,
            investor=investor,
            community=community,
            pitch_id=pitch_id,
        )

    user_store.close()
    pitch_store.close()
