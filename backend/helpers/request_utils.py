"""
Request utilities for extracting client information and the form payload.

The service runs on loopback behind nginx, so the socket peer is the proxy
and the visitor's address comes from X-Forwarded-For.
"""

import json
from collections.abc import AsyncIterator
from typing import Any, Optional
from urllib.parse import parse_qsl

from fastapi import Request
from starlette.datastructures import Headers
from starlette.formparsers import MultiPartException, MultiPartParser

from models.config import settings
from models.exceptions import MalformedSubmissionException, PayloadTooLargeException
from models.schemas import ContactFormRequest


def get_client_ip(request: Request, trusted_hops: Optional[int] = None) -> Optional[str]:
    """
    Extract the client's real IP address from the request.

    Each trusted proxy appends the address it received the request from to
    X-Forwarded-For, so with N trusted hops the client is the N-th entry from
    the right. Entries further left are client-supplied and ignored.

    Args:
        request: FastAPI request object
        trusted_hops: Number of trusted proxies, defaults to TRUSTED_PROXY_HOPS

    Returns:
        Client IP address or None if not available
    """
    if trusted_hops is None:
        trusted_hops = settings.TRUSTED_PROXY_HOPS

    if trusted_hops > 0:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            hops = [ip.strip() for ip in forwarded_for.split(",") if ip.strip()]
            if hops:
                return hops[-min(trusted_hops, len(hops))]

    # Direct connection
    if request.client:
        return request.client.host

    return None


def get_rate_limit_key(request: Request) -> str:
    """Rate limiter key: the originating client address."""
    return get_client_ip(request) or "unknown"


def _decode_json(body: bytes) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except (UnicodeDecodeError, ValueError):
        raise MalformedSubmissionException() from None

    # Arrays, strings and numbers carry no fields
    return data if isinstance(data, dict) else {}


def _decode_urlencoded(body: bytes) -> dict[str, Any]:
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        raise MalformedSubmissionException() from None
    return dict(parse_qsl(text, keep_blank_values=True))


async def _decode_multipart(headers: Headers, body: bytes) -> dict[str, Any]:
    async def replay() -> AsyncIterator[bytes]:
        yield body

    try:
        form = await MultiPartParser(headers, replay()).parse()
    except MultiPartException:
        raise MalformedSubmissionException() from None
    return {key: value for key, value in form.items() if isinstance(value, str)}


async def read_contact_payload(
    request: Request, max_bytes: Optional[int] = None
) -> ContactFormRequest:
    """
    Read and decode the contact form body.

    Accepts JSON (what the site's script sends) and urlencoded or multipart
    forms (plain HTML form posts).

    Raises:
        PayloadTooLargeException: body exceeds max_bytes
        MalformedSubmissionException: body is not valid JSON / UTF-8
    """
    if max_bytes is None:
        max_bytes = settings.MAX_BODY_BYTES

    declared = request.headers.get("Content-Length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLargeException(max_bytes)

    # Chunked bodies carry no Content-Length; stop reading at the cap
    chunks: list[bytes] = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_bytes:
            raise PayloadTooLargeException(max_bytes)
        chunks.append(chunk)
    body = b"".join(chunks)

    content_type = request.headers.get("Content-Type", "").split(";")[0].strip().lower()

    if content_type == "application/x-www-form-urlencoded":
        data = _decode_urlencoded(body)
    elif content_type == "multipart/form-data":
        data = await _decode_multipart(request.headers, body)
    elif not body.strip():
        data = {}
    else:
        data = _decode_json(body)

    return ContactFormRequest.model_validate(data)
