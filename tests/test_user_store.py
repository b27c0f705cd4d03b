"""Unit tests for auth/store.py -- UserStore persistence.

Covers:
- create_user() normalizes email and rejects duplicates (case-insensitive)
- the single-credential invariant
- update_profile() field whitelist, role validation, preferences round trip
- OAuth and batch lookups
"""

from __future__ import annotations

import pytest

from auth.models import InvestmentPreferences, User
from auth.store import DuplicateEmailError, UserStore


@pytest.fixture
def store():
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


def _local(email: str = "ada@example.com", role: str = "founder") -> User:
    return User(name="Ada", email=email, role=role, hashed_password="$2b$12$placeholder")


class TestCreateUser:
    """Account creation and its invariants."""

    def test_email_is_normalized(self, store: UserStore) -> None:
        """Emails are stored trimmed and lower-cased."""
        uid = store.create_user(_local("  Ada@Example.COM "))
        assert store.get_by_id(uid).email == "ada@example.com"

    def test_defaults(self, store: UserStore) -> None:
        """A bare local account is an active, unverified founder with empty preferences."""
        user = store.get_by_id(store.create_user(_local()))
        assert user.role == "founder"
        assert user.is_active is True
        assert user.is_verified is False
        assert user.investment_preferences == InvestmentPreferences()
        assert user.created_at

    def test_duplicate_email_rejected(self, store: UserStore) -> None:
        """Email uniqueness ignores case."""
        store.create_user(_local("ada@example.com"))
        with pytest.raises(DuplicateEmailError):
            store.create_user(_local("ADA@example.com"))

    def test_unknown_role_rejected(self, store: UserStore) -> None:
        """Roles outside founder/investor/community raise ValueError."""
        with pytest.raises(ValueError):
            store.create_user(_local(role="admin"))

    def test_requires_a_credential(self, store: UserStore) -> None:
        """An account with neither a password hash nor an OAuth identity is refused."""
        with pytest.raises(ValueError):
            store.create_user(User(name="Nobody", email="n@example.com"))

    def test_rejects_two_credentials(self, store: UserStore) -> None:
        """An account with both a password hash and an OAuth identity is refused."""
        user = _local()
        user.oauth_provider, user.oauth_subject = "google", "sub-1"
        with pytest.raises(ValueError):
            store.create_user(user)


class TestUpdateProfile:
    """Partial profile updates."""

    def test_updates_fields(self, store: UserStore) -> None:
        """Supplied fields change and the refreshed user is returned."""
        uid = store.create_user(_local())
        updated = store.update_profile(uid, name="Ada L.", bio="Builder", role="community")
        assert updated.name == "Ada L."
        assert updated.bio == "Builder"
        assert updated.role == "community"

    def test_preferences_round_trip(self, store: UserStore) -> None:
        """InvestmentPreferences survive JSON storage unchanged."""
        uid = store.create_user(_local(role="investor"))
        prefs = InvestmentPreferences(industries=["Fintech"], stages=["Seed"], min_investment=10, max_investment=500)
        updated = store.update_profile(uid, investment_preferences=prefs)
        assert updated.investment_preferences == prefs

    def test_credentials_are_not_profile_fields(self, store: UserStore) -> None:
        """Neither credential can be set through update_profile."""
        uid = store.create_user(_local())
        with pytest.raises(ValueError):
            store.update_profile(uid, hashed_password="x")
        with pytest.raises(ValueError):
            store.update_profile(uid, oauth_subject="sub-1")

    def test_rejects_unknown_role(self, store: UserStore) -> None:
        """Role changes are validated like role on creation."""
        uid = store.create_user(_local())
        with pytest.raises(ValueError):
            store.update_profile(uid, role="admin")

    def test_missing_user_returns_none(self, store: UserStore) -> None:
        """Updating an unknown ID returns None rather than raising."""
        assert store.update_profile(9999, name="Ghost") is None


class TestLookups:
    """Read paths other than by-id and by-email."""

    def test_get_by_oauth(self, store: UserStore) -> None:
        """An OAuth account is found by (provider, subject) and only by that pair."""
        uid = store.create_user(User(name="G", email="g@example.com", oauth_provider="google", oauth_subject="sub-1"))
        assert store.get_by_oauth("google", "sub-1").id == uid
        assert store.get_by_oauth("google", "sub-2") is None

    def test_get_many(self, store: UserStore) -> None:
        """Batch lookup skips unknown IDs and handles an empty list."""
        a = store.create_user(_local("a@example.com"))
        b = store.create_user(_local("b@example.com"))
        found = store.get_many([a, b, 4242])
        assert set(found) == {a, b}
        assert store.get_many([]) == {}
