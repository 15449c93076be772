"""
Pytest configuration and fixtures for backend tests.
"""

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["ENVIRONMENT"] = "test"
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["LOG_FILE"] = ""
os.environ["CONTACT_RATE_LIMIT"] = "5/hour"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
os.environ.pop("SENTRY_DSN", None)

from models.schemas import OutboundEmail  # noqa: E402
from services.email_service import EmailProvider, get_email_provider  # noqa: E402


class RecordingProvider(EmailProvider):
    """Email provider spy: records every message, optionally reports failure."""

    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.sent: list[OutboundEmail] = []

    def send(self, message: OutboundEmail) -> bool:
        self.sent.append(message)
        return self.accept


@pytest.fixture
def mail_spy() -> RecordingProvider:
    """Provider that accepts and records messages."""
    return RecordingProvider()


@pytest.fixture
def failing_mail_spy() -> RecordingProvider:
    """Provider that records messages but reports the relay rejected them."""
    return RecordingProvider(accept=False)


@pytest.fixture(scope="function")
def client(mail_spy):
    """Create a test client with a fresh limiter and the recording provider."""
    from main import app
    from helpers.rate_limiter import limiter

    # Reset rate limiter storage before each test to prevent rate limit errors
    limiter.reset()

    app.dependency_overrides[get_email_provider] = lambda: mail_spy
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def valid_payload() -> dict:
    return {
        "name": "Ali",
        "email": "ali@example.com",
        "phone": "",
        "subject": "General Inquiry",
        "message": "Hello",
        "honeypot": "",
    }
