# ruff: noqa: E402
# E402 disabled: load_dotenv() must run before other imports for Sentry DSN

import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

import sentry_sdk
import uvicorn
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from core.correlation import (
    generate_correlation_id,
    get_correlation_id,
    resolve_correlation_id,
    set_correlation_id,
)
from core.logging_config import configure_logging
from core.sentry_config import init_sentry
from helpers.rate_limiter import (
    inject_rate_limit_headers,
    limiter,
    rate_limit_exceeded_handler,
)
from helpers.security_headers import SecurityHeadersMiddleware, apply_security_headers
from models.config import settings
from models.exceptions import (
    ContactFormException,
    EmailDeliveryException,
    PayloadTooLargeException,
)
from routers import contact_router

SERVER_ERROR_MESSAGE = "Server error. Please try again later."

# Initialize Sentry BEFORE app creation
init_sentry()

# Configure logging with Loguru
configure_logging(settings.ENVIRONMENT, settings.LOG_FILE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler: log the effective mail routing setup."""
    logger.info(
        f"Contact form API starting (env={settings.ENVIRONMENT}, "
        f"provider={settings.EMAIL_PROVIDER}, "
        f"relay={settings.SMTP_HOST}:{settings.SMTP_PORT}, "
        f"limit={settings.CONTACT_RATE_LIMIT})"
    )
    yield
    logger.info("Contact form API stopped")


app = FastAPI(
    title=f"{settings.SITE_NAME} Contact API",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url=None,
    openapi_url="/api/openapi.json" if settings.ENVIRONMENT == "development" else None,
)

# Attach rate limiter to app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Inject correlation ID into request context and Sentry."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request with correlation ID tracking."""
        correlation_id = resolve_correlation_id(request.headers.get("X-Correlation-ID"))
        set_correlation_id(correlation_id)

        sentry_sdk.set_tag("correlation_id", correlation_id)

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = correlation_id

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all incoming requests with performance monitoring."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request and log timing information."""
        start_time = time.perf_counter()

        client_host = request.client.host if request.client else "unknown"
        logger.info(f"Request: {request.method} {request.url.path} from {client_host}")

        response = await call_next(request)

        duration = time.perf_counter() - start_time

        logger.info(
            f"Response: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )

        # Warn on slow requests (usually a sluggish mail relay)
        if duration > settings.SLOW_REQUEST_THRESHOLD:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} "
                f"took {duration:.2f}s (threshold: {settings.SLOW_REQUEST_THRESHOLD}s)"
            )

        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        return response


# Middleware runs in reverse order - the correlation ID must be set before
# RequestLoggingMiddleware writes its first line
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

# The static site posts from its own origin; CORS only matters for previews
cors_origins = ["*"] if settings.ENVIRONMENT == "development" else settings.CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "X-Correlation-ID"],
    expose_headers=[
        "RateLimit-Limit",
        "RateLimit-Remaining",
        "RateLimit-Reset",
        "Retry-After",
        "X-Correlation-ID",
    ],
)


def _server_error_response(correlation_id: str) -> JSONResponse:
    response = JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": SERVER_ERROR_MESSAGE},
    )
    # Unhandled exceptions are answered outside the middleware stack
    response.headers["X-Correlation-ID"] = correlation_id
    return apply_security_headers(response)


# Global unhandled exception handler (returns generic 500 and logs details)
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch all unhandled exceptions with full Sentry capture."""
    correlation_id = get_correlation_id() or generate_correlation_id()

    sentry_sdk.set_tag("correlation_id", correlation_id)
    sentry_sdk.capture_exception(exc)

    # Extras go through bind(): with keyword arguments loguru would
    # str.format() the message and choke on braces in the exception text
    logger.bind(path=str(request.url.path), method=request.method).exception(
        f"Unhandled exception: {exc!r}"
    )

    return _server_error_response(correlation_id)


@app.exception_handler(EmailDeliveryException)
async def email_delivery_exception_handler(
    request: Request, exc: EmailDeliveryException
) -> JSONResponse:
    """Relay failures surface as a generic 500; details stay in the logs."""
    sentry_sdk.set_tag("correlation_id", exc.correlation_id)
    sentry_sdk.set_tag("exception_type", exc.__class__.__name__)
    sentry_sdk.capture_exception(exc)

    logger.bind(path=str(request.url.path)).error(
        f"Email delivery failed: {exc.message}"
    )

    return _server_error_response(exc.correlation_id)


@app.exception_handler(ContactFormException)
async def contact_form_exception_handler(
    request: Request, exc: ContactFormException
) -> JSONResponse:
    """Rejected submissions: 400 with the specific reason."""
    logger.bind(path=str(request.url.path)).info(
        f"Contact form rejected ({exc.kind}): {exc.message}"
    )

    response = JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": exc.message},
    )
    # Rejected submissions still spend quota
    return inject_rate_limit_headers(request, response)


@app.exception_handler(PayloadTooLargeException)
async def payload_too_large_exception_handler(
    request: Request, exc: PayloadTooLargeException
) -> JSONResponse:
    logger.bind(path=str(request.url.path)).warning(
        f"Payload too large: {exc.message}"
    )

    response = JSONResponse(
        status_code=status.HTTP_413_CONTENT_TOO_LARGE,
        content={"success": False, "error": "Request body too large."},
    )
    return inject_rate_limit_headers(request, response)


app.include_router(contact_router.router, prefix="/api")


def run() -> None:
    """Serve the API on the configured loopback address."""
    # X-Forwarded-For is interpreted by helpers.request_utils, not uvicorn
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        proxy_headers=False,
        log_level="info",
    )


if __name__ == "__main__":
    run()
