"""
auth/oauth.py -- Authlib Google OAuth configuration and account resolution.

Reads configuration from core.config.get_settings() at module load. Google is
registered only when both client ID and secret are configured; otherwise the
OAuth routes answer 503.

Security notes:
  Email verification is mandatory. get_oauth_profile() raises ValueError if
  the provider does not confirm the email is verified. An unverified email
  could belong to someone else, and the new account would claim that email.

  OAuth state parameter (CSRF protection) is handled by authlib automatically
  via Starlette SessionMiddleware.

Layer rule: no imports from api/ or market/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging

from authlib.integrations.starlette_client import OAuth

from auth.models import OAuthProfile, User
from auth.store import UserStore
from core.config import get_settings

logger = logging.getLogger("pitchmatch.auth.oauth")

oauth = OAuth()

_cfg = get_settings()

# Google -- OIDC discovery
if _cfg.google_oauth_configured:
    oauth.register(
        name="google",
        client_id=_cfg.google_client_id,
        client_secret=_cfg.google_client_secret,
        server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
        client_kwargs={"scope": "openid email profile"},
    )
    logger.info("Google OAuth provider registered")


def get_enabled_providers() -> list[dict]:
    """Return {"name", "label"} for every configured OAuth provider."""
    providers: list[dict] = []
    if get_settings().google_oauth_configured:
        providers.append({"name": "google", "label": "Google"})
    return providers


def get_oauth_profile(token: dict, provider: str = "google") -> OAuthProfile:
    """Extract a normalized OAuthProfile from an OIDC token response.

    The id_token claims (parsed by authlib into token["userinfo"]) include
    email, email_verified, sub, name and picture.

    Raises:
        ValueError: userinfo is missing, the email is unverified, or the
            email/sub claims are absent.
    """
    userinfo = token.get("userinfo")
    if not userinfo:
        raise ValueError(f"{provider} OAuth: no userinfo in token response")

    if not userinfo.get("email_verified", False):
        raise ValueError(f"{provider} OAuth: email is not verified.")

    email = userinfo.get("email")
    subject = userinfo.get("sub")
    if not email or not subject:
        raise ValueError(f"{provider} OAuth: missing email or sub claim in userinfo")

    return OAuthProfile(
        provider=provider,
        subject=str(subject),
        email=email,
        name=userinfo.get("name") or email.split("@")[0],
        avatar=userinfo.get("picture"),
    )


def resolve_oauth_user(store: UserStore, profile: OAuthProfile) -> User:
    """Find or create the account that owns an OAuth identity.

    Resolution order:
      1. (provider, subject) already linked -- returning user.
      2. Otherwise create a new founder account with no local password.

    An account carries exactly one credential, so an email that already
    belongs to another account (local, or linked to a different identity) is
    refused rather than linked.

    The caller checks is_active before issuing a token.

    Raises:
        ValueError: the email is already registered to another account.
    """
    user = store.get_by_oauth(profile.provider, profile.subject)
    if user is not None:
        return user

    existing = store.get_by_email(profile.email)
    if existing is not None:
        if existing.oauth_subject is not None:
            raise ValueError(f"{profile.email} is already linked to another {existing.oauth_provider} identity")
        raise ValueError(f"{profile.email} belongs to a password account; sign in with the password instead")

    user_id = store.create_user(
        User(
            name=profile.name,
            email=profile.email,
            role="founder",
            oauth_provider=profile.provider,
            oauth_subject=profile.subject,
            avatar=profile.avatar,
            is_verified=True,
        )
    )
    logger.info("Created account id=%s from %s OAuth", user_id, profile.provider)
    return store.get_by_id(user_id)
