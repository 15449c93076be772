"""
Custom domain exceptions for the contact service.

These exceptions are raised by the service and helper layers and converted to
HTTP responses by centralized exception handlers in main.py, so the service
stays HTTP-agnostic.

Every exception carries a correlation ID that matches the X-Correlation-ID
response header and the log lines of the request that raised it.
"""

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
    """

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        # Use request correlation ID if available, otherwise generate new one
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class ValidationException(DomainException):
    """Raised when input validation fails."""

    pass


# Contact form exceptions


class ContactFormException(ValidationException):
    """Base class for rejected contact submissions (reported as HTTP 400)."""

    kind = "InvalidSubmission"
    default_message = "Invalid submission."

    def __init__(self, message: str | None = None, correlation_id: str | None = None):
        super().__init__(message or self.default_message, correlation_id)


class MissingFieldsException(ContactFormException):
    """Name, email, subject or message is empty after sanitization."""

    kind = "MissingFields"
    default_message = "Missing required fields."


class InvalidEmailException(ContactFormException):
    """Email does not look like local@domain.tld."""

    kind = "InvalidEmail"
    default_message = "Invalid email address."


class InvalidSubjectException(ContactFormException):
    """Subject is not one of the routed departments."""

    kind = "InvalidSubject"
    default_message = "Invalid subject selection."


class MalformedSubmissionException(ContactFormException):
    """Request body could not be decoded."""

    kind = "MalformedSubmission"
    default_message = "Invalid request body."


class PayloadTooLargeException(DomainException):
    """Request body exceeds the configured size cap."""

    def __init__(self, limit: int, correlation_id: str | None = None):
        self.limit = limit
        super().__init__(
            f"Request body exceeds {limit} bytes.", correlation_id=correlation_id
        )


class EmailDeliveryException(DomainException):
    """Raised when the mail relay does not accept a message.

    The message is for operators only; callers receive a generic error.
    """

    pass
