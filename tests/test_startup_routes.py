"""
tests/test_startup_routes.py -- Integration tests for /api/startups.

Coverage:
  - Founders submit pitches (201); investors and community members get 403
  - Invalid stage is 400
  - Any authenticated role can list and fetch pitches; unknown id is 404,
    out-of-range id is 400
  - /mine returns only the caller's pitches
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tests.conftest import ApiContext

_BODY = {
    "name": "Ledgerly",
    "description": "Bookkeeping for freelancers.",
    "industry": "Fintech",
    "stage": "Pre-Seed",
}


class TestSubmitPitch:
    """POST /api/startups."""

    def test_founder_creates_pitch(self, api_client: ApiContext) -> None:
        """A founder submits a pitch and gets 201 with the founder summary."""
        resp = api_client.client.post("/api/startups", json=_BODY, headers=api_client.founder.headers)
        assert resp.status_code == 201, resp.text
        pitch = resp.json()["data"]
        assert pitch["founder_id"] == api_client.founder.id
        assert pitch["founder"]["name"] == "Fay Founder"
        assert pitch["stage"] == "Pre-Seed"

    def test_investor_cannot_submit(self, api_client: ApiContext) -> None:
        """Investors get 403 on pitch submission."""
        resp = api_client.client.post("/api/startups", json=_BODY, headers=api_client.investor.headers)
        assert resp.status_code == 403

    def test_community_cannot_submit(self, api_client: ApiContext) -> None:
        """Community members get 403 on pitch submission."""
        resp = api_client.client.post("/api/startups", json=_BODY, headers=api_client.community.headers)
        assert resp.status_code == 403

    def test_invalid_stage(self, api_client: ApiContext) -> None:
        """A stage outside the fixed list is reported against the stage field."""
        body = dict(_BODY, stage="Series Z")
        resp = api_client.client.post("/api/startups", json=body, headers=api_client.founder.headers)
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "stage"

    def test_requires_token(self, api_client: ApiContext) -> None:
        """Submitting without a token returns 401."""
        assert api_client.client.post("/api/startups", json=_BODY).status_code == 401


class TestReadPitches:
    """Listing and fetching pitches."""

    def test_list_visible_to_community(self, api_client: ApiContext) -> None:
        """Any signed-in role can list pitches."""
        resp = api_client.client.get("/api/startups", headers=api_client.community.headers)
        assert resp.status_code == 200
        assert api_client.pitch_id in [p["id"] for p in resp.json()["data"]]

    def test_get_one(self, api_client: ApiContext) -> None:
        """GET /api/startups/{id} returns the pitch."""
        resp = api_client.client.get(f"/api/startups/{api_client.pitch_id}", headers=api_client.investor.headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["name"] == "SolarGrid"

    def test_get_missing(self, api_client: ApiContext) -> None:
        """An unknown pitch id returns 404."""
        resp = api_client.client.get("/api/startups/999999", headers=api_client.investor.headers)
        assert resp.status_code == 404

    def test_get_oversized_id_is_400(self, api_client: ApiContext) -> None:
        """A pitch id beyond the 64-bit range returns 400, not a server error."""
        resp = api_client.client.get(f"/api/startups/{'9' * 25}", headers=api_client.investor.headers)
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "path.pitch_id"

    def test_mine_only_lists_own(self, api_client: ApiContext) -> None:
        """GET /mine lists only the calling founder's pitches."""
        signup = api_client.client.post(
            "/auth/signup",
            json={"name": "Other Founder", "email": "other-founder@example.com", "password": "longenough1"},
        )
        headers = {"Authorization": f"Bearer {signup.json()['data']['token']}"}
        created = api_client.client.post("/api/startups", json=_BODY, headers=headers).json()["data"]
        mine = api_client.client.get("/api/startups/mine", headers=headers).json()["data"]
        assert [p["id"] for p in mine] == [created["id"]]

    def test_mine_forbidden_for_investor(self, api_client: ApiContext) -> None:
        """GET /mine is founder-only."""
        resp = api_client.client.get("/api/startups/mine", headers=api_client.investor.headers)
        assert resp.status_code == 403
