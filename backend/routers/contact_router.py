"""Contact form router for relaying visitor inquiries to department mailboxes."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.concurrency import run_in_threadpool

from helpers.rate_limiter import contact_rate_limit, inject_rate_limit_headers, limiter
from helpers.request_utils import get_client_ip, read_contact_payload
from models.schemas import ContactFormResponse, HealthResponse
from services.contact_service import ContactService, SubmissionOutcome
from services.email_service import EmailProvider, get_email_provider

router = APIRouter(prefix="/contact", tags=["contact"])

SUCCESS_MESSAGE = "Message sent successfully."


@router.post("", response_model=ContactFormResponse)
@limiter.limit(contact_rate_limit)
async def submit_contact_form(
    request: Request,
    provider: EmailProvider = Depends(get_email_provider),
) -> JSONResponse:
    """Submit a contact form.

    Accepts {name, email, phone?, subject, message, honeypot?} as JSON or as
    a urlencoded form. No authentication required - public endpoint.
    Rate limited per client address (CONTACT_RATE_LIMIT, 5/hour by default).

    A filled honeypot returns the regular success body without sending
    anything.

    Raises:
        ContactFormException: 400 on missing fields, bad email or unknown subject
        EmailDeliveryException: 500 if the relay rejects the message
        (both handled by main.py exception handlers)
    """
    form = await read_contact_payload(request)
    client_ip = get_client_ip(request)

    # SMTP is blocking; keep it off the event loop
    outcome = await run_in_threadpool(
        ContactService.submit_contact_form, form, client_ip, provider
    )

    if outcome is SubmissionOutcome.SPAM_SUPPRESSED:
        body = ContactFormResponse(success=True)
    else:
        body = ContactFormResponse(success=True, message=SUCCESS_MESSAGE)

    logger.debug(f"Contact form outcome: {outcome.value}")
    response = JSONResponse(content=body.model_dump(exclude_none=True))
    return inject_rate_limit_headers(request, response)


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health check for the contact service."""
    return HealthResponse()
