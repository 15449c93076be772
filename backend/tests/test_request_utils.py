"""Tests for request_utils helper functions."""

import asyncio
from unittest.mock import MagicMock

import pytest

from helpers.request_utils import get_client_ip, get_rate_limit_key, read_contact_payload
from models.exceptions import MalformedSubmissionException, PayloadTooLargeException


def make_request(headers: dict | None = None, host: str | None = "127.0.0.1"):
    request = MagicMock()
    request.headers = headers or {}
    request.client = MagicMock(host=host) if host else None
    return request


def make_body_request(body: bytes | list[bytes], content_type: str = "application/json"):
    request = make_request({"Content-Type": content_type})
    chunks = body if isinstance(body, list) else [body]
    request.consumed = []

    async def stream():
        for chunk in chunks:
            request.consumed.append(chunk)
            yield chunk

    request.stream = stream
    return request


class TestGetClientIp:
    """Test cases for get_client_ip function."""

    def test_single_trusted_hop_takes_rightmost(self):
        """nginx appends the peer address; that entry is the client."""
        request = make_request({"X-Forwarded-For": "203.0.113.50"})

        assert get_client_ip(request, trusted_hops=1) == "203.0.113.50"

    def test_spoofed_entries_ignored(self):
        """Entries supplied by the client itself sit to the left."""
        request = make_request(
            {"X-Forwarded-For": "1.2.3.4, 70.41.3.18, 203.0.113.50"}
        )

        assert get_client_ip(request, trusted_hops=1) == "203.0.113.50"

    def test_two_trusted_hops(self):
        request = make_request(
            {"X-Forwarded-For": "1.2.3.4, 203.0.113.50, 10.0.0.2"}
        )

        assert get_client_ip(request, trusted_hops=2) == "203.0.113.50"

    def test_more_hops_than_entries_uses_leftmost(self):
        request = make_request({"X-Forwarded-For": "203.0.113.50"})

        assert get_client_ip(request, trusted_hops=3) == "203.0.113.50"

    def test_whitespace_and_empty_entries(self):
        request = make_request({"X-Forwarded-For": " 203.0.113.50 , ,"})

        assert get_client_ip(request, trusted_hops=1) == "203.0.113.50"

    def test_zero_hops_ignores_header(self):
        request = make_request(
            {"X-Forwarded-For": "203.0.113.50"}, host="192.168.1.1"
        )

        assert get_client_ip(request, trusted_hops=0) == "192.168.1.1"

    def test_direct_connection(self):
        request = make_request({}, host="192.168.1.1")

        assert get_client_ip(request, trusted_hops=1) == "192.168.1.1"

    def test_no_client(self):
        request = make_request({}, host=None)

        assert get_client_ip(request) is None

    def test_defaults_to_settings(self):
        """TRUSTED_PROXY_HOPS defaults to one proxy."""
        request = make_request({"X-Forwarded-For": "1.2.3.4, 203.0.113.50"})

        assert get_client_ip(request) == "203.0.113.50"


class TestGetRateLimitKey:
    def test_uses_client_ip(self):
        request = make_request({"X-Forwarded-For": "203.0.113.50"})

        assert get_rate_limit_key(request) == "203.0.113.50"

    def test_unknown_without_address(self):
        assert get_rate_limit_key(make_request({}, host=None)) == "unknown"


class TestReadContactPayload:
    """Body decoding for JSON and urlencoded forms."""

    def test_json_object(self):
        request = make_body_request(b'{"name": "Ali", "extra": 1}')

        form = asyncio.run(read_contact_payload(request, max_bytes=1024))

        assert form.name == "Ali"
        assert form.email is None

    def test_json_with_charset(self):
        request = make_body_request(
            '{"name": "علي"}'.encode("utf-8"), "application/json; charset=utf-8"
        )

        form = asyncio.run(read_contact_payload(request, max_bytes=1024))

        assert form.name == "علي"

    def test_urlencoded(self):
        request = make_body_request(
            b"name=Ali&subject=Tender+%26+Bidding&phone=",
            "application/x-www-form-urlencoded",
        )

        form = asyncio.run(read_contact_payload(request, max_bytes=1024))

        assert form.name == "Ali"
        assert form.subject == "Tender & Bidding"
        assert form.phone == ""

    def test_empty_body_has_no_fields(self):
        request = make_body_request(b"")

        form = asyncio.run(read_contact_payload(request, max_bytes=1024))

        assert form.name is None

    def test_non_object_json_has_no_fields(self):
        request = make_body_request(b'"just a string"')

        form = asyncio.run(read_contact_payload(request, max_bytes=1024))

        assert form.message is None

    def test_malformed_json(self):
        request = make_body_request(b"{oops")

        with pytest.raises(MalformedSubmissionException):
            asyncio.run(read_contact_payload(request, max_bytes=1024))

    def test_invalid_utf8(self):
        request = make_body_request(b"\xff\xfe\x00", "application/x-www-form-urlencoded")

        with pytest.raises(MalformedSubmissionException):
            asyncio.run(read_contact_payload(request, max_bytes=1024))

    def test_oversized_body(self):
        request = make_body_request(b"x" * 2048)

        with pytest.raises(PayloadTooLargeException) as exc_info:
            asyncio.run(read_contact_payload(request, max_bytes=1024))

        assert exc_info.value.limit == 1024

    def test_declared_length_checked_before_reading(self):
        request = make_body_request(b"{}")
        request.headers = {"Content-Length": "999999", "Content-Type": "application/json"}

        with pytest.raises(PayloadTooLargeException):
            asyncio.run(read_contact_payload(request, max_bytes=1024))

    def test_chunked_body_stops_at_cap(self):
        """Without Content-Length the stream is abandoned once the cap is passed."""
        request = make_body_request([b"x" * 600, b"x" * 600, b"x" * 600])

        with pytest.raises(PayloadTooLargeException):
            asyncio.run(read_contact_payload(request, max_bytes=1024))

        assert len(request.consumed) == 2

    def test_chunked_body_within_cap(self):
        request = make_body_request([b'{"name": ', b'"Ali"}'])

        form = asyncio.run(read_contact_payload(request, max_bytes=1024))

        assert form.name == "Ali"
