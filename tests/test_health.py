"""
tests/test_health.py -- Integration tests for the liveness endpoints and the
app-level error handlers.

Covers:
  - GET / and GET /api/health return 200 with the success envelope
  - No authentication required
  - Unknown routes return the 404 error envelope
  - An unexpected exception becomes a generic 500; the stack trace is only
    included in debug mode
  - The login rate limit answers 429 with Retry-After
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from fastapi.testclient import TestClient

import api.main as main_module
from api.limiter import limiter
from api.main import app

if TYPE_CHECKING:
    from tests.conftest import ApiContext


def test_root_returns_running_message(api_client: ApiContext) -> None:
    """GET / returns the running message without auth."""
    resp = api_client.client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["message"] == "Server is running!"
    assert "timestamp" in data


def test_api_health_reports_version(api_client: ApiContext) -> None:
    """GET /api/health returns the API version."""
    resp = api_client.client.get("/api/health", headers={})
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["version"]


def test_unknown_route_uses_error_envelope(api_client: ApiContext) -> None:
    """Unknown routes return the 404 error envelope naming the path."""
    resp = api_client.client.get("/api/does-not-exist")
    assert resp.status_code == 404
    data = resp.json()
    assert data["success"] is False
    assert data["code"] == "not_found"
    assert "/api/does-not-exist" in data["message"]


class TestUnexpectedErrors:
    """The catch-all handler hides internals outside debug mode."""

    @staticmethod
    def _break_pitch_listing(api_client: ApiContext, monkeypatch: pytest.MonkeyPatch) -> TestClient:
        def boom():
            raise RuntimeError("database exploded")

        monkeypatch.setattr(api_client.pitch_store, "list_pitches", boom)
        # The app state is already populated by the module fixture's lifespan.
        return TestClient(app, raise_server_exceptions=False)

    def test_500_includes_stack_in_debug(self, api_client: ApiContext, monkeypatch: pytest.MonkeyPatch) -> None:
        """With DEBUG on, a handler crash returns 500 internal_error with the stack trace."""
        client = self._break_pitch_listing(api_client, monkeypatch)
        monkeypatch.setattr(main_module, "_settings", main_module._settings.model_copy(update={"debug": True}))

        resp = client.get("/api/startups", headers=api_client.founder.headers)
        assert resp.status_code == 500
        data = resp.json()
        assert data["success"] is False
        assert data["code"] == "internal_error"
        assert data["message"] == "Internal Server Error"
        assert "RuntimeError" in data["stack"]

    def test_500_hides_stack_outside_debug(self, api_client: ApiContext, monkeypatch: pytest.MonkeyPatch) -> None:
        """With DEBUG off, the 500 body carries the generic message and no stack key."""
        client = self._break_pitch_listing(api_client, monkeypatch)
        monkeypatch.setattr(main_module, "_settings", main_module._settings.model_copy(update={"debug": False}))

        resp = client.get("/api/startups", headers=api_client.founder.headers)
        assert resp.status_code == 500
        data = resp.json()
        assert data["message"] == "Internal Server Error"
        assert "stack" not in data
        assert "database exploded" not in resp.text


class TestRateLimit:
    """slowapi limits, re-enabled for this class only."""

    @pytest.fixture
    def live_limiter(self, monkeypatch: pytest.MonkeyPatch):
        limiter.reset()
        monkeypatch.setattr(limiter, "enabled", True)
        yield limiter
        limiter.reset()

    def test_login_rate_limited(self, api_client: ApiContext, live_limiter) -> None:
        """Repeated logins from one client eventually get 429 with a Retry-After header."""
        body = {"email": "ghost@example.com", "password": "wrong-password"}
        statuses = []
        for _ in range(30):
            resp = api_client.client.post("/auth/login", json=body)
            statuses.append(resp.status_code)
            if resp.status_code == 429:
                break

        assert statuses[0] == 401
        assert statuses[-1] == 429, statuses
        data = resp.json()
        assert data["success"] is False
        assert data["code"] == "rate_limited"
        assert int(resp.headers["retry-after"]) > 0
