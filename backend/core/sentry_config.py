"""
Sentry SDK configuration.

- Environment-based initialization (disabled without SENTRY_DSN)
- Scrubbing of submitter details before events leave the server
- Loguru integration
"""

import os
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.loguru import LoguruIntegration
from sentry_sdk.types import Event, Hint

HEALTH_TRANSACTIONS = {
    "/api/contact",
    "GET /api/contact",
    "health_check",
}

# Contact payload keys that carry personal data
SCRUBBED_FIELDS = ("name", "email", "phone", "message", "honeypot")


def _before_send(event: Event, hint: Hint) -> Event | None:
    """
    Scrub submitter data before sending to Sentry.

    - Drop email/username from the user context, anonymize the IP
    - Drop cookies and filter the Authorization header
    - Filter contact form fields from the captured request body

    Returns:
        Modified event with PII removed.
    """
    user = event.get("user")
    if user:
        user.pop("email", None)
        user.pop("username", None)
        if "ip_address" in user:
            user["ip_address"] = "{{auto}}"  # Anonymized by Sentry

    request = event.get("request")
    if request and isinstance(request, dict):
        request.pop("cookies", None)
        headers = request.get("headers")
        if isinstance(headers, dict) and "Authorization" in headers:
            headers["Authorization"] = "[Filtered]"

        data = request.get("data")
        if isinstance(data, dict):
            for key in SCRUBBED_FIELDS:
                if key in data:
                    data[key] = "[Filtered]"
        elif data:
            request["data"] = "[Filtered]"

    return event


def _before_send_transaction(event: Event, hint: Hint) -> Event | None:
    """Drop health-check transactions."""
    transaction_name = event.get("transaction", "")
    request = event.get("request") or {}
    method = request.get("method", "") if isinstance(request, dict) else ""

    if transaction_name in HEALTH_TRANSACTIONS and method != "POST":
        return None

    return event


def _traces_sampler(sampling_context: dict[str, Any]) -> float:
    """
    Dynamic sampling based on endpoint.

    Returns:
        Sample rate between 0.0 and 1.0.
    """
    if sampling_context.get("parent_sampled") is True:
        return 1.0

    asgi_scope = sampling_context.get("asgi_scope", {})
    path = asgi_scope.get("path", "")
    method = asgi_scope.get("method", "")

    # Never trace health checks
    if path == "/api/contact" and method == "GET":
        return 0.0

    # Submissions are rare, trace all of them
    if path == "/api/contact":
        return 1.0

    return 0.1


def init_sentry() -> None:
    """
    Initialize Sentry SDK with FastAPI integration.

    Call this BEFORE creating the FastAPI app instance.
    Sentry is disabled if SENTRY_DSN environment variable is not set.
    """
    dsn = os.getenv("SENTRY_DSN")

    if not dsn:
        return

    environment = os.getenv("ENVIRONMENT", "development")
    release = os.getenv("SENTRY_RELEASE", "unknown")

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        # Privacy: Do NOT send PII automatically
        send_default_pii=False,
        integrations=[
            FastApiIntegration(transaction_style="url"),
            LoguruIntegration(),
        ],
        traces_sampler=_traces_sampler,
        sample_rate=1.0,
        before_send=_before_send,
        before_send_transaction=_before_send_transaction,
        attach_stacktrace=True,
        max_breadcrumbs=50,
        ignore_errors=[
            KeyboardInterrupt,
            SystemExit,
        ],
    )
