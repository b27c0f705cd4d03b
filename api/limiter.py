"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in route modules (to
apply per-route limits with @limiter.limit()). A single shared instance means
all routes share the same in-memory counter store.

Limits are keyed by client IP. Only the credential endpoints are limited;
LOGIN_LIMIT and SIGNUP_LIMIT come from Settings so deployments can tune them
without a code change.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

LOGIN_LIMIT: str = get_settings().login_rate_limit
SIGNUP_LIMIT: str = get_settings().signup_rate_limit
