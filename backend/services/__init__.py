"""
Services layer for business logic.

Services are HTTP-agnostic: they raise domain exceptions that main.py
converts to responses.
"""

from .contact_service import ContactService, SubmissionOutcome
from .email_service import EmailProvider, get_email_provider

__all__ = [
    "ContactService",
    "SubmissionOutcome",
    "EmailProvider",
    "get_email_provider",
]
