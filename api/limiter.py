"""
api/limiter.py -- slowapi rate limiter construction.

The budget comes from Settings (RATE_LIMIT_MAX_REQUESTS per
RATE_LIMIT_WINDOW_MS) and applies to every route as a default limit, keyed by
client IP. api/main.py attaches the instance to app.state.limiter, where
SlowAPIMiddleware looks for it.

One limiter per app: all routes of that app share the same in-memory
counter store. Counters are per process and reset on restart.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import Settings


def build_limiter(settings: Settings) -> Limiter:
    return Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        storage_uri="memory://",
    )
