"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; the same approach is used by market/models.py.

Layer rule: no imports from api/ or market/.
"""

from __future__ import annotations

from dataclasses import dataclass, field

ROLES: tuple[str, ...] = ("founder", "investor", "community")

STAGES: tuple[str, ...] = ("Pre-Seed", "Seed", "Series A", "Series B", "Series C", "Growth", "IPO")


@dataclass
class InvestmentPreferences:
    """Investor-only targeting preferences. Ignored for other roles."""

    industries: list[str] = field(default_factory=list)
    stages: list[str] = field(default_factory=list)  # values from STAGES
    min_investment: float = 0
    max_investment: float | None = None


@dataclass
class User:
    """Represents a marketplace account.

    email is the login identifier and is stored lower-cased and trimmed.

    Exactly one credential is set: hashed_password for local accounts, or
    oauth_provider / oauth_subject for accounts created through OAuth.

    interested_pitches is materialized by the route layer from the interest
    relation in market/store.py; the user store never writes it.
    """

    name: str
    email: str
    role: str = "founder"  # "founder", "investor", "community"
    id: int | None = None
    hashed_password: str | None = None  # None = OAuth-only user
    oauth_provider: str | None = None  # "google"
    oauth_subject: str | None = None  # provider's stable user ID
    avatar: str | None = None
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    linkedin: str | None = None
    twitter: str | None = None
    investment_preferences: InvestmentPreferences = field(default_factory=InvestmentPreferences)
    interested_pitches: list[int] = field(default_factory=list)
    is_verified: bool = False
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None
    last_login: str | None = None


@dataclass
class OAuthProfile:
    """Normalized identity extracted from a provider token response."""

    provider: str
    subject: str
    email: str
    name: str = ""
    avatar: str | None = None
