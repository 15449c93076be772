"""
Input normalization for contact form fields.

Submitted values end up in mail headers (subject, reply-to) and bodies, so
every field is flattened to a single line and capped before use.
"""

import re
from typing import Any, Optional

from models.config import settings

# Deliberately loose: local@domain.tld with no whitespace
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

_LINE_BREAKS = re.compile(r"[\r\n]")


def sanitize(value: Any, max_length: Optional[int] = None) -> str:
    """
    Normalize a submitted field.

    Non-string values become an empty string. Each CR and LF is replaced by a
    space, the result is truncated and then trimmed.

    Args:
        value: Raw field value from the request body
        max_length: Character cap, defaults to CONTACT_MAX_FIELD_LENGTH

    Returns:
        Single-line string of at most max_length characters

    Examples:
        >>> sanitize("  Ali\\r\\nBcc: x@y.z ")
        'Ali  Bcc: x@y.z'
        >>> sanitize(42)
        ''
    """
    if not isinstance(value, str):
        return ""

    if max_length is None:
        max_length = settings.CONTACT_MAX_FIELD_LENGTH

    return _LINE_BREAKS.sub(" ", value)[:max_length].strip()


def is_valid_email(value: str) -> bool:
    """Check that value looks like local@domain.tld."""
    return bool(EMAIL_PATTERN.fullmatch(value))
