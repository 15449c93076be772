from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from helpers.sanitization import sanitize


class ContactSubject(str, Enum):
    """Departments a visitor can address; values match the site's <select>."""

    GENERAL = "General Inquiry"
    QUOTATION = "Request for Quotation"
    TENDER = "Tender & Bidding"
    CAREERS = "Careers"


# Contact Form Schemas
class ContactFormRequest(BaseModel):
    """Raw contact form body.

    Fields are typed loosely on purpose: anything that is not a string is
    treated as empty by sanitization instead of failing request parsing.
    """

    model_config = ConfigDict(extra="ignore")

    name: Any = None
    email: Any = None
    phone: Any = None
    subject: Any = None
    message: Any = None
    honeypot: Any = None


class ContactSubmission(BaseModel):
    """Sanitized contact form fields, safe for mail headers and bodies."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    phone: str
    subject: str
    message: str

    @classmethod
    def from_request(
        cls, form: ContactFormRequest, max_length: Optional[int] = None
    ) -> "ContactSubmission":
        return cls(
            name=sanitize(form.name, max_length),
            email=sanitize(form.email, max_length),
            phone=sanitize(form.phone, max_length),
            subject=sanitize(form.subject, max_length),
            message=sanitize(form.message, max_length),
        )


class OutboundEmail(BaseModel):
    """Message handed to an email provider."""

    model_config = ConfigDict(frozen=True)

    from_address: str
    from_name: str = ""
    to: str
    cc: Optional[str] = None
    reply_to: Optional[str] = None
    subject: str
    text_body: str
    html_body: str

    @property
    def recipients(self) -> list[str]:
        """Envelope recipients (To plus Cc)."""
        return [addr for addr in (self.to, self.cc) if addr]


class ContactFormResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class ContactErrorResponse(BaseModel):
    success: bool = False
    error: str = Field(..., description="Human-readable reason")


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "contact-form"
