"""Contact form service.

Validates a submission, picks the department mailbox from the subject and
relays the message through an email provider.
"""

import html
from enum import Enum
from typing import Optional

from loguru import logger

from helpers.sanitization import is_valid_email
from models.config import settings
from models.exceptions import (
    EmailDeliveryException,
    InvalidEmailException,
    InvalidSubjectException,
    MissingFieldsException,
)
from models.schemas import (
    ContactFormRequest,
    ContactSubject,
    ContactSubmission,
    OutboundEmail,
)
from services.email_service import EmailProvider

NOT_PROVIDED = "Not provided"


class SubmissionOutcome(str, Enum):
    DELIVERED = "delivered"
    SPAM_SUPPRESSED = "spam_suppressed"


class ContactService:
    """Service for handling contact form submissions."""

    # Department mailboxes; addresses never appear in the site markup
    DEPARTMENT_ROUTES = {
        ContactSubject.GENERAL: "info@alali.om",
        ContactSubject.QUOTATION: "rfq@alali.om",
        ContactSubject.TENDER: "bid@alali.om",
        ContactSubject.CAREERS: "cv@alali.om",
    }

    @classmethod
    def is_spam(cls, form: ContactFormRequest) -> bool:
        """A filled honeypot field means the form was completed by a bot."""
        return isinstance(form.honeypot, str) and form.honeypot.strip() != ""

    @classmethod
    def resolve_subject(cls, subject: str) -> ContactSubject:
        """Map the submitted subject to a department.

        Raises:
            InvalidSubjectException: subject is not an exact department name
        """
        try:
            return ContactSubject(subject)
        except ValueError:
            raise InvalidSubjectException() from None

    @classmethod
    def resolve_destination(cls, subject: str) -> str:
        """Department mailbox for a subject."""
        return cls.DEPARTMENT_ROUTES[cls.resolve_subject(subject)]

    @classmethod
    def validate(cls, submission: ContactSubmission) -> ContactSubject:
        """Check a sanitized submission; the first failing check wins.

        Returns:
            The department the submission is addressed to

        Raises:
            MissingFieldsException: name, email, subject or message is empty
            InvalidEmailException: email is not local@domain.tld
            InvalidSubjectException: subject is not a known department
        """
        required = (
            submission.name,
            submission.email,
            submission.subject,
            submission.message,
        )
        if not all(required):
            raise MissingFieldsException()

        if not is_valid_email(submission.email):
            raise InvalidEmailException()

        return cls.resolve_subject(submission.subject)

    @classmethod
    def build_subject_line(cls, submission: ContactSubmission) -> str:
        return f"[{settings.SITE_NAME} Contact] {submission.subject} — {submission.name}"

    @classmethod
    def _build_text_body(
        cls, submission: ContactSubmission, client_ip: Optional[str]
    ) -> str:
        site = settings.SITE_NAME
        return f"""New contact form submission from {site}:

Name:    {submission.name}
Email:   {submission.email}
Phone:   {submission.phone or NOT_PROVIDED}
Subject: {submission.subject}

Message:
{submission.message}

---
Submitted from {site} contact form
IP: {client_ip or "unknown"}"""

    @classmethod
    def _build_html_body(
        cls, submission: ContactSubmission, client_ip: Optional[str]
    ) -> str:
        """HTML rendering of the submission.

        All user-provided data is HTML-escaped before interpolation.
        """
        site = html.escape(settings.SITE_NAME)
        safe_name = html.escape(submission.name)
        safe_email = html.escape(submission.email)
        safe_phone = html.escape(submission.phone or NOT_PROVIDED)
        safe_subject = html.escape(submission.subject)
        safe_message = html.escape(submission.message)
        safe_ip = html.escape(client_ip or "unknown")

        label = "padding:8px 0;color:#666;font-size:13px;vertical-align:top"
        value = "padding:8px 0;color:#222;font-size:14px"

        return f"""
<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto">
  <div style="background:#034d57;padding:20px 24px;border-radius:8px 8px 0 0">
    <h2 style="color:#fff;margin:0;font-size:18px">New Contact Form Submission</h2>
    <p style="color:rgba(255,255,255,.7);margin:4px 0 0;font-size:13px">{site}</p>
  </div>
  <div style="background:#f9f9f9;padding:24px;border:1px solid #e5e5e5;border-top:none">
    <table style="width:100%;border-collapse:collapse">
      <tr><td style="{label};width:120px"><strong>Name</strong></td><td style="{value}">{safe_name}</td></tr>
      <tr><td style="{label}"><strong>Email</strong></td><td style="{value}"><a href="mailto:{safe_email}">{safe_email}</a></td></tr>
      <tr><td style="{label}"><strong>Phone</strong></td><td style="{value}">{safe_phone}</td></tr>
      <tr><td style="{label}"><strong>Subject</strong></td><td style="padding:8px 0;color:#034d57;font-size:14px;font-weight:bold">{safe_subject}</td></tr>
    </table>
    <div style="margin-top:16px;padding:16px;background:#fff;border-radius:6px;border:1px solid #e5e5e5">
      <p style="margin:0 0 8px;color:#666;font-size:12px;text-transform:uppercase;letter-spacing:.5px">Message</p>
      <p style="margin:0;color:#222;font-size:14px;white-space:pre-wrap">{safe_message}</p>
    </div>
  </div>
  <div style="background:#f0f0f0;padding:12px 24px;border-radius:0 0 8px 8px;font-size:11px;color:#999;border:1px solid #e5e5e5;border-top:none">
    Submitted from {site} contact form &bull; IP: {safe_ip}
  </div>
</div>"""

    @classmethod
    def build_email(
        cls,
        submission: ContactSubmission,
        subject: ContactSubject,
        client_ip: Optional[str],
    ) -> OutboundEmail:
        """Compose the message for the department mailbox.

        Replies go straight to the submitter; the system sender is only the
        envelope From.
        """
        return OutboundEmail(
            from_address=settings.MAIL_FROM_ADDRESS,
            from_name=settings.MAIL_FROM_NAME,
            to=cls.DEPARTMENT_ROUTES[subject],
            cc=settings.MAIL_CC_ADDRESS or None,
            reply_to=submission.email,
            subject=cls.build_subject_line(submission),
            text_body=cls._build_text_body(submission, client_ip),
            html_body=cls._build_html_body(submission, client_ip),
        )

    @classmethod
    def submit_contact_form(
        cls,
        form: ContactFormRequest,
        client_ip: Optional[str],
        provider: EmailProvider,
    ) -> SubmissionOutcome:
        """Process a contact form submission.

        Spam is discarded silently: the caller gets the same success response
        and nothing is sent.

        Args:
            form: Raw form data
            client_ip: Originating address, included in the mail for audit
            provider: Email provider that relays the message

        Returns:
            What happened to the submission

        Raises:
            ContactFormException: submission failed validation
            EmailDeliveryException: the provider did not accept the message
        """
        if cls.is_spam(form):
            logger.info(f"Contact form honeypot triggered from {client_ip}")
            return SubmissionOutcome.SPAM_SUPPRESSED

        submission = ContactSubmission.from_request(
            form, settings.CONTACT_MAX_FIELD_LENGTH
        )
        subject = cls.validate(submission)
        message = cls.build_email(submission, subject, client_ip)

        if not provider.send(message):
            logger.error(
                f"Failed to relay contact form to {message.to} "
                f"(subject={subject.value}, ip={client_ip})"
            )
            raise EmailDeliveryException(
                f"Mail relay rejected contact form for {message.to}"
            )

        logger.info(
            f"Contact form relayed: department={subject.value} to={message.to} "
            f"ip={client_ip}"
        )
        return SubmissionOutcome.DELIVERED
