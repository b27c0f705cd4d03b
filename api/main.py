"""
api/main.py -- FastAPI application entry point for PitchMatch.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter
  2. SessionMiddleware  -- stores the OAuth state between redirect and callback

Lifespan opens the user and pitch stores on startup and disposes their
engines on shutdown.
"""

from __future__ import annotations

import logging
import time
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.investor import router as investor_router
from api.routes.startups import router as startups_router
from auth.oauth import oauth as oauth_client
from auth.store import UserStore
from core.config import get_settings
from market.store import PitchStore

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("pitchmatch.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the stores on startup and dispose them on shutdown."""
    logger.info("PitchMatch API starting up (debug=%s)", _settings.debug)
    app.state.user_store = UserStore(_settings.auth_db_url)
    app.state.pitch_store = PitchStore(_settings.market_db_url)
    app.state.oauth = oauth_client
    logger.info("Stores initialized")

    yield

    app.state.user_store.close()
    app.state.pitch_store.close()
    logger.info("PitchMatch API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="PitchMatch API",
    description="Founders submit startup pitches; investors browse them and mark interest.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(SlowAPIMiddleware)

# authlib keeps the OAuth state value in the session between the redirect
# to Google and the callback.
app.add_middleware(SessionMiddleware, secret_key=_settings.secret_key)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(startups_router, prefix="/api/startups", tags=["Startups"])
app.include_router(investor_router, prefix="/api/investor", tags=["Investor"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the ErrorResponse envelope so API clients can parse
# errors uniformly.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    body = ErrorResponse(code=code, message=message, **extra).model_dump(mode="json", exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "rate_limited", f"Too many requests: {exc.detail}")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with one entry per invalid field."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return _error(400, "validation_error", "Validation failed", errors=errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render route-raised and router-level HTTP errors in the envelope.

    Route handlers raise HTTPException with detail={"code", "message"}.
    Starlette's own errors (unknown route, wrong method) carry a string.
    """
    if isinstance(exc.detail, dict):
        response = _error(
            exc.status_code,
            exc.detail.get("code", f"http_{exc.status_code}"),
            exc.detail.get("message", ""),
        )
    elif exc.status_code == 404:
        response = _error(404, "not_found", f"Route {request.url.path} not found")
    else:
        response = _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The stack trace is logged and, only in debug mode, echoed in the body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)) if _settings.debug else None
    return _error(500, "internal_error", "Internal Server Error", stack=stack)


# ---------------------------------------------------------------------------
# Health endpoints
# ---------------------------------------------------------------------------


def _health(message: str) -> HealthResponse:
    return HealthResponse(
        message=message,
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/", tags=["Health"])
async def root() -> HealthResponse:
    """Liveness check."""
    return _health("Server is running!")


@app.get("/api/health", tags=["Health"])
async def health() -> HealthResponse:
    """Liveness check with the API version."""
    return _health("API is healthy")
