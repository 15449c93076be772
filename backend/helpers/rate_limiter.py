"""Rate limiter configuration module.

This module is separate from main.py to avoid circular imports when routers
need to access the limiter.

Counters live in the storage named by RATE_LIMIT_STORAGE_URI (in-process
memory by default, redis:// or memcached:// when several workers must share
them). Responses carry the standard RateLimit-* headers instead of slowapi's
X-RateLimit-* ones.
"""

import math
import time

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from helpers.request_utils import get_rate_limit_key
from models.config import settings

RATE_LIMITED_MESSAGE = "Too many submissions. Please try again later."


def create_limiter(storage_uri: str | None = None) -> Limiter:
    """Build a limiter keyed on the client address."""
    return Limiter(
        key_func=get_rate_limit_key,
        storage_uri=storage_uri or settings.RATE_LIMIT_STORAGE_URI,
        strategy="moving-window",
        # Legacy X-RateLimit-* headers stay off; see inject_rate_limit_headers
        headers_enabled=False,
    )


# Create rate limiter - imported by routers and main.py
limiter = create_limiter()


def contact_rate_limit() -> str:
    """Current contact form limit, read per request so it follows settings."""
    return settings.CONTACT_RATE_LIMIT


def inject_rate_limit_headers(
    request: Request, response: Response, retry_after: bool = False
) -> Response:
    """Add RateLimit-Limit/Remaining/Reset for the limit checked on this request.

    Does nothing on routes without a limit.
    """
    current = getattr(request.state, "view_rate_limit", None)
    if current is None:
        return response

    limit_item, identifiers = current
    active = getattr(request.app.state, "limiter", limiter)
    reset_at, remaining = active.limiter.get_window_stats(limit_item, *identifiers)
    reset_in = max(0, math.ceil(reset_at - time.time()))

    response.headers["RateLimit-Limit"] = str(limit_item.amount)
    response.headers["RateLimit-Remaining"] = str(max(0, remaining))
    response.headers["RateLimit-Reset"] = str(reset_in)
    if retry_after:
        response.headers["Retry-After"] = str(reset_in)
    return response


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Reject an over-quota request with 429 and the standard headers."""
    logger.warning(
        f"Rate limit exceeded for {get_rate_limit_key(request)} "
        f"on {request.url.path}: {exc.detail}"
    )
    response = JSONResponse(
        status_code=429,
        content={"success": False, "error": RATE_LIMITED_MESSAGE},
    )
    return inject_rate_limit_headers(request, response, retry_after=True)
