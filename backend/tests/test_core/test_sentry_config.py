"""Tests for Sentry SDK configuration and PII scrubbing."""

import os
from typing import Any
from unittest.mock import patch

import pytest

from core.sentry_config import (
    _before_send,
    _before_send_transaction,
    _traces_sampler,
    init_sentry,
)


class TestBeforeSendPIIScrubbing:
    """Tests for PII scrubbing in _before_send."""

    def test_scrubs_user_email_and_ip(self) -> None:
        event: dict[str, Any] = {
            "user": {
                "id": "123",
                "email": "user@example.com",
                "ip_address": "203.0.113.7",
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert "email" not in result["user"]  # type: ignore[typeddict-item]
        assert result["user"]["ip_address"] == "{{auto}}"  # type: ignore[typeddict-item]
        assert result["user"]["id"] == "123"  # type: ignore[typeddict-item]

    def test_filters_contact_fields_in_body(self) -> None:
        """Submitted name, email, phone and message never reach Sentry."""
        event: dict[str, Any] = {
            "request": {
                "url": "/api/contact",
                "data": {
                    "name": "Ali",
                    "email": "ali@example.com",
                    "phone": "+968 9123 4567",
                    "subject": "Careers",
                    "message": "Hello",
                },
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        data = result["request"]["data"]  # type: ignore[typeddict-item, index]
        for key in ("name", "email", "phone", "message"):
            assert data[key] == "[Filtered]"
        assert data["subject"] == "Careers"

    def test_filters_raw_body(self) -> None:
        event: dict[str, Any] = {
            "request": {"url": "/api/contact", "data": "name=Ali&email=a%40b.c"}
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert result["request"]["data"] == "[Filtered]"  # type: ignore[typeddict-item, index]

    def test_removes_cookies_and_authorization(self) -> None:
        event: dict[str, Any] = {
            "request": {
                "url": "/api/contact",
                "cookies": {"session": "secret"},
                "headers": {
                    "Authorization": "Bearer secret_token_123",
                    "Content-Type": "application/json",
                },
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        request = result["request"]  # type: ignore[typeddict-item]
        assert "cookies" not in request
        assert request["headers"]["Authorization"] == "[Filtered]"  # type: ignore[index]
        assert request["headers"]["Content-Type"] == "application/json"  # type: ignore[index]

    def test_handles_bare_event(self) -> None:
        event: dict[str, Any] = {"message": "Test error"}
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result == {"message": "Test error"}


class TestBeforeSendTransaction:
    """Tests for transaction filtering."""

    def test_drops_health_check(self) -> None:
        event: dict[str, Any] = {
            "transaction": "/api/contact",
            "request": {"method": "GET"},
        }
        assert _before_send_transaction(event, {}) is None  # type: ignore[arg-type]

    def test_keeps_submissions(self) -> None:
        event: dict[str, Any] = {
            "transaction": "/api/contact",
            "request": {"method": "POST"},
        }
        assert _before_send_transaction(event, {}) is event  # type: ignore[arg-type]

    def test_keeps_other_transactions(self) -> None:
        event: dict[str, Any] = {"transaction": "/api/docs"}
        assert _before_send_transaction(event, {}) is event  # type: ignore[arg-type]


class TestTracesSampler:
    """Tests for dynamic trace sampling."""

    def test_never_samples_health_checks(self) -> None:
        context: dict[str, Any] = {
            "asgi_scope": {"path": "/api/contact", "method": "GET"}
        }
        assert _traces_sampler(context) == 0.0

    def test_samples_every_submission(self) -> None:
        context: dict[str, Any] = {
            "asgi_scope": {"path": "/api/contact", "method": "POST"}
        }
        assert _traces_sampler(context) == 1.0

    def test_default_sampling_rate(self) -> None:
        context: dict[str, Any] = {"asgi_scope": {"path": "/api/docs"}}
        assert _traces_sampler(context) == 0.1

    def test_respects_parent_sampling(self) -> None:
        context: dict[str, Any] = {
            "parent_sampled": True,
            "asgi_scope": {"path": "/api/contact", "method": "GET"},
        }
        assert _traces_sampler(context) == 1.0

    def test_handles_missing_asgi_scope(self) -> None:
        assert _traces_sampler({}) == 0.1


class TestInitSentry:
    """Tests for Sentry initialization."""

    def test_without_dsn_does_nothing(self) -> None:
        with patch("sentry_sdk.init") as mock_init:
            with patch.dict(os.environ, {}, clear=True):
                init_sentry()
        mock_init.assert_not_called()

    def test_with_dsn_initializes(self) -> None:
        env_vars = {
            "SENTRY_DSN": "https://test@o0.ingest.sentry.io/0",
            "ENVIRONMENT": "production",
            "SENTRY_RELEASE": "1.2.3",
        }
        with patch("sentry_sdk.init") as mock_init:
            with patch.dict(os.environ, env_vars):
                init_sentry()

        call_kwargs = mock_init.call_args.kwargs
        assert call_kwargs["dsn"] == env_vars["SENTRY_DSN"]
        assert call_kwargs["environment"] == "production"
        assert call_kwargs["release"] == "1.2.3"
        assert call_kwargs["send_default_pii"] is False

    @pytest.mark.parametrize("var", ["ENVIRONMENT", "SENTRY_RELEASE"])
    def test_defaults(self, var: str) -> None:
        with patch("sentry_sdk.init") as mock_init:
            with patch.dict(
                os.environ, {"SENTRY_DSN": "https://test@o0.ingest.sentry.io/0"}
            ):
                os.environ.pop(var, None)
                init_sentry()

        call_kwargs = mock_init.call_args.kwargs
        expected = {"ENVIRONMENT": "development", "SENTRY_RELEASE": "unknown"}[var]
        key = "environment" if var == "ENVIRONMENT" else "release"
        assert call_kwargs[key] == expected
