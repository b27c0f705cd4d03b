"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Clients authenticate with an "Authorization: Bearer <token>" header carrying
a JWT issued by signup, login, or the OAuth callback.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.
require_role(*roles) wraps get_current_user() and raises HTTP 403 when the
account's stored role is not one of `roles`.

The role check uses the role stored in the DB, not the role claim in the
token, so a role change through PUT /auth/profile takes effect immediately.

Layer rule: no imports from api/ or market/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.models import User
from auth.tokens import decode_access_token, extract_bearer_token


def try_get_current_user(request: Request) -> User | None:
    """Authenticate the request via its Bearer token.

    Returns the authenticated User on success, None on any failure.
    Never raises -- callers that need a hard 401 should use get_current_user().
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if not token:
        return None
    payload = decode_access_token(token)
    if not payload:
        return None
    user = request.app.state.user_store.get_by_id(payload["user_id"])
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user


def require_role(*roles: str) -> Callable[[Request], User]:
    """Build a dependency that only admits accounts whose role is in `roles`.

    Use as a FastAPI dependency:
        @router.get("/investor-only")
        async def route(user: User = Depends(require_role("investor"))): ...
    """
    allowed = frozenset(roles)
    label = " or ".join(roles)

    def dependency(request: Request) -> User:
        user = get_current_user(request)
        if user.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": f"Access denied: {label} role required."},
            )
        return user

    return dependency


require_investor = require_role("investor")
require_founder = require_role("founder")
