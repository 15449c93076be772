"""
Security headers middleware for FastAPI.

The service only ever returns JSON, so responses lock down framing, sniffing
and resource loading entirely.
"""

from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from models.config import settings


def apply_security_headers(response: Response) -> Response:
    """Set the lock-down headers on a single response."""
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers["Content-Security-Policy"] = (
        "default-src 'none'; frame-ancestors 'none'"
    )

    # max-age=31536000 = 1 year
    if settings.ENVIRONMENT == "production":
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )

    if "Cache-Control" not in response.headers:
        response.headers["Cache-Control"] = "no-store, max-age=0"

    return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds security headers to all responses.

    Headers added:
    - X-Content-Type-Options: Prevents MIME type sniffing
    - X-Frame-Options: Prevents clickjacking attacks
    - Referrer-Policy: No referrer for API responses
    - Content-Security-Policy: Nothing may be loaded from a JSON response
    - Strict-Transport-Security: Forces HTTPS (in production)
    - Cache-Control: Submissions and errors are never cached

    Unhandled-exception responses are built outside the middleware stack and
    call apply_security_headers directly.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Add security headers to the response."""
        response = await call_next(request)
        return apply_security_headers(response)
