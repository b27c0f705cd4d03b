"""
api/routes/auth.py -- Account and session endpoints.

Routes (mounted under /auth):
  POST /signup               -- email/password signup (founder by default); 201 + JWT
  POST /signup/investor      -- investor signup with optional preferences; 201 + JWT
  POST /login                -- email/password login shared by all roles; JWT
  GET  /me                   -- current account (requires auth)
  PUT  /profile              -- update own profile (requires auth)
  POST /logout               -- stateless; the client discards its token
  GET  /providers            -- enabled OAuth providers (public)
  GET  /google               -- redirect to Google (503 when not configured)
  GET  /google/callback      -- issue JWT, redirect to the frontend with ?token=
  GET  /error                -- landing route for failed OAuth attempts

Security:
  POST /login and both signup routes are rate-limited per client IP.
  authenticate_user() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse

from api.limiter import LOGIN_LIMIT, SIGNUP_LIMIT, limiter
from api.models import (
    AuthData,
    AuthResponse,
    InvestorSignupRequest,
    LoginRequest,
    MessageResponse,
    OAuthProviderInfo,
    ProfileUpdate,
    ProvidersEnvelope,
    SignupRequest,
    UserEnvelope,
    UserResponse,
)
from auth.dependencies import get_current_user
from auth.models import InvestmentPreferences, User
from auth.oauth import get_enabled_providers, get_oauth_profile, resolve_oauth_user
from auth.store import DuplicateEmailError, UserStore
from auth.tokens import authenticate_user, hash_password, issue_token_for
from core.config import get_settings
from market.store import PitchStore

logger = logging.getLogger("pitchmatch.api.auth")

# Auth policy:
# - POST /auth/signup, /auth/signup/investor, /auth/login: public, rate-limited
# - POST /auth/logout, GET /auth/providers, GET /auth/error: public
# - GET  /auth/google, /auth/google/callback: public (OAuth flow)
# - GET  /auth/me, PUT /auth/profile: requires auth (get_current_user)
router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _with_interests(request: Request, user: User) -> User:
    """Attach the investor's interested pitch IDs from the pitch store."""
    if user.role == "investor":
        pitch_store: PitchStore = request.app.state.pitch_store
        user.interested_pitches = pitch_store.get_interested_pitch_ids(user.id)
    return user


def _token_response(request: Request, user: User, message: str, status_code: int = 200) -> JSONResponse:
    body = AuthResponse(
        message=message,
        data=AuthData(
            token=issue_token_for(user),
            expires_in=get_settings().token_expire_seconds,
            user=UserResponse.from_user(_with_interests(request, user)),
        ),
    )
    resp = JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _register(request: Request, user: User) -> User:
    """Insert a new account, mapping a taken email to 409."""
    user_store: UserStore = request.app.state.user_store
    if user_store.get_by_email(user.email) is not None:
        raise _duplicate_email()
    try:
        user_id = user_store.create_user(user)
    except DuplicateEmailError as exc:
        # A concurrent signup won the race between the check and the insert.
        raise _duplicate_email() from exc
    logger.info("Created %s account id=%s", user.role, user_id)
    return user_store.get_by_id(user_id)


def _duplicate_email() -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={"code": "duplicate_email", "message": "User already exists with this email"},
    )


# ---------------------------------------------------------------------------
# Email / password
# ---------------------------------------------------------------------------


@limiter.limit(SIGNUP_LIMIT)
@router.post("/signup", response_model=AuthResponse, status_code=201)
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Create a founder or community account (or any role passed explicitly) and log it in."""
    user = _register(
        request,
        User(
            name=body.name,
            email=body.email,
            role=body.role.value,
            hashed_password=hash_password(body.password),
        ),
    )
    return _token_response(request, user, "Account created successfully! You are now logged in.", status_code=201)


@limiter.limit(SIGNUP_LIMIT)
@router.post("/signup/investor", response_model=AuthResponse, status_code=201)
def signup_investor(request: Request, body: InvestorSignupRequest) -> JSONResponse:
    """Create an investor account. The role is fixed regardless of the body."""
    prefs = InvestmentPreferences()
    if body.investment_preferences is not None:
        prefs = InvestmentPreferences(**body.investment_preferences.to_domain_dict())
    user = _register(
        request,
        User(
            name=body.name,
            email=body.email,
            role="investor",
            hashed_password=hash_password(body.password),
            investment_preferences=prefs,
        ),
    )
    return _token_response(request, user, "Investor account created successfully.", status_code=201)


@limiter.limit(LOGIN_LIMIT)
@router.post("/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    Unknown email and wrong password return the same 401 so the response
    does not reveal which emails are registered.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "bad_credentials", "message": "Invalid email or password"},
            headers={"Cache-Control": "no-store"},
        )
    user_store.update_last_login(user.id)
    return _token_response(request, user, "Login successful")


@router.post("/logout", response_model=MessageResponse)
async def logout() -> MessageResponse:
    """Tokens are stateless; logging out means the client drops its copy."""
    return MessageResponse(message="Logout successful. Please remove the token from client-side storage.")


# ---------------------------------------------------------------------------
# Authenticated account endpoints
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserEnvelope)
def me(request: Request, current_user: User = Depends(get_current_user)) -> UserEnvelope:
    """Return the currently authenticated account."""
    return UserEnvelope(
        message="Current user",
        data=UserResponse.from_user(_with_interests(request, current_user)),
    )


@router.put("/profile", response_model=UserEnvelope)
def update_profile(
    request: Request,
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
) -> UserEnvelope:
    """Update the caller's own profile. Only supplied fields change."""
    updates = body.model_dump(exclude_none=True)
    if body.role is not None:
        updates["role"] = body.role.value
    if body.investment_preferences is not None:
        updates["investment_preferences"] = body.investment_preferences.to_domain_dict()
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )

    user_store: UserStore = request.app.state.user_store
    updated = user_store.update_profile(current_user.id, **updates)
    if updated is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "User not found."})
    return UserEnvelope(
        message="Profile updated successfully",
        data=UserResponse.from_user(_with_interests(request, updated)),
    )


# ---------------------------------------------------------------------------
# OAuth
# ---------------------------------------------------------------------------


@router.get("/providers", response_model=ProvidersEnvelope)
async def list_providers() -> ProvidersEnvelope:
    """Return the configured OAuth providers; empty when none are set up."""
    return ProvidersEnvelope(data=[OAuthProviderInfo(**p) for p in get_enabled_providers()])


def _google_unavailable() -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={"code": "oauth_unavailable", "message": "Google OAuth is not configured on this server"},
    )


def _frontend_redirect(path: str, **params: str) -> RedirectResponse:
    url = get_settings().frontend_url.rstrip("/") + path
    if params:
        url = f"{url}?{urlencode(params)}"
    resp = RedirectResponse(url, status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/google")
async def google_login(request: Request):
    """Redirect the browser to Google's consent page."""
    if not get_settings().google_oauth_configured:
        raise _google_unavailable()
    client = request.app.state.oauth.create_client("google")
    redirect_uri = str(request.url_for("google_callback"))
    return await client.authorize_redirect(request, redirect_uri)


@router.get("/google/callback", name="google_callback")
async def google_callback(request: Request) -> RedirectResponse:
    """Handle Google's callback and hand a JWT to the frontend.

    Flow:
      1. Exchange the authorization code (authlib checks the session state).
      2. Extract a verified profile from the id_token claims.
      3. Find or create the account; an email owned by another account fails.
      4. Redirect to {frontend_url}/auth/callback?token=...; any failure
         redirects to {frontend_url}/auth/error instead.
    """
    if not get_settings().google_oauth_configured:
        raise _google_unavailable()

    client = request.app.state.oauth.create_client("google")
    try:
        token = await client.authorize_access_token(request)
    except OAuthError:
        logger.exception("Google token exchange failed")
        return _frontend_redirect("/auth/error")

    try:
        profile = get_oauth_profile(token, "google")
        user = resolve_oauth_user(request.app.state.user_store, profile)
    except (ValueError, DuplicateEmailError) as exc:
        logger.warning("Google login rejected: %s", exc)
        return _frontend_redirect("/auth/error")

    if not user.is_active:
        logger.info("Google login refused for inactive account id=%s", user.id)
        return _frontend_redirect("/auth/error")

    request.app.state.user_store.update_last_login(user.id)
    return _frontend_redirect("/auth/callback", token=issue_token_for(user))


@router.get("/error")
async def auth_error():
    """Generic failure endpoint for the OAuth flow."""
    raise HTTPException(
        status_code=400,
        detail={"code": "auth_failed", "message": "Authentication failed. Please try again."},
    )
