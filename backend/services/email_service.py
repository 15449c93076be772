"""Email providers used to relay contact submissions.

Supports:
- smtp: the local Postfix relay (default), optionally STARTTLS/SSL + login
- console: logs messages instead of sending them (development)

Providers report failure by returning False; they never retry.
"""

import re
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid

from loguru import logger

from models.config import settings
from models.schemas import OutboundEmail


class EmailProvider(ABC):
    """Abstract base class for email providers."""

    @abstractmethod
    def send(self, message: OutboundEmail) -> bool:
        """Send an email. Returns True once the transport accepted it."""
        pass


def build_mime_message(message: OutboundEmail) -> MIMEMultipart:
    """Render an OutboundEmail as multipart/alternative (text first, then HTML)."""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = message.subject
    msg["From"] = formataddr((message.from_name, message.from_address))
    msg["To"] = message.to
    if message.cc:
        msg["Cc"] = message.cc
    if message.reply_to:
        msg["Reply-To"] = message.reply_to
    msg["Message-ID"] = make_msgid(domain=message.from_address.rsplit("@", 1)[-1])

    msg.attach(MIMEText(message.text_body, "plain", "utf-8"))
    msg.attach(MIMEText(message.html_body, "html", "utf-8"))
    return msg


class SMTPProvider(EmailProvider):
    """SMTP email provider."""

    def __init__(self) -> None:
        """Initialize SMTP provider with settings."""
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.use_ssl = settings.SMTP_USE_SSL
        self.timeout = settings.SMTP_TIMEOUT

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            # Implicit SSL (port 465) - connection is encrypted from start
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)

        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        if self.use_tls:
            # STARTTLS (port 587) - upgrade to TLS after connection
            server.starttls()
        return server

    def send(self, message: OutboundEmail) -> bool:
        """Send email via SMTP.

        The default configuration targets an unauthenticated relay on
        localhost:25; credentials are only used when both are set.
        """
        try:
            logger.debug(
                f"SMTP: Connecting to {self.host}:{self.port} "
                f"(SSL={self.use_ssl}, TLS={self.use_tls})"
            )

            msg = build_mime_message(message)

            with self._connect() as server:
                if self.user and self.password:
                    server.login(self.user, self.password)

                refused = server.sendmail(
                    message.from_address, message.recipients, msg.as_string()
                )

            if refused:
                # Accepted for at least one recipient; report the rest
                logger.warning(f"SMTP: Some recipients refused - {refused}")

            logger.info(f"Email relayed to {message.to} (cc={message.cc})")
            return True

        except smtplib.SMTPRecipientsRefused as e:
            logger.error(f"SMTP: Recipients refused - {e.recipients}")
            return False
        except smtplib.SMTPSenderRefused as e:
            logger.error(f"SMTP: Sender refused - {e.smtp_code}: {e.smtp_error!r}")
            return False
        except smtplib.SMTPDataError as e:
            logger.error(f"SMTP: Data error - {e.smtp_code}: {e.smtp_error!r}")
            return False
        except smtplib.SMTPAuthenticationError as e:
            logger.error(
                f"SMTP: Authentication failed - {e.smtp_code}: {e.smtp_error!r}"
            )
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to relay email to {message.to}: {e!r}")
            return False


class ConsoleProvider(EmailProvider):
    """Console email provider for development/testing."""

    def send(self, message: OutboundEmail) -> bool:
        """Log email to console."""
        clean_html = re.sub(r"<[^>]+>", "", message.html_body)[:500]
        logger.info(
            f"\n{'=' * 60}\n"
            f"EMAIL (Console Provider - Development Mode)\n"
            f"{'=' * 60}\n"
            f"From: {message.from_name} <{message.from_address}>\n"
            f"To: {message.to}\n"
            f"Cc: {message.cc or '-'}\n"
            f"Reply-To: {message.reply_to or '-'}\n"
            f"Subject: {message.subject}\n"
            f"{'-' * 60}\n"
            f"PLAIN TEXT:\n{message.text_body}\n"
            f"{'-' * 60}\n"
            f"HTML (preview):\n{clean_html}\n"
            f"{'=' * 60}\n"
        )
        return True


def get_email_provider() -> EmailProvider:
    """Get the configured email provider."""
    provider_name = settings.EMAIL_PROVIDER.lower()

    if provider_name == "smtp":
        return SMTPProvider()
    elif provider_name == "console":
        return ConsoleProvider()
    else:
        logger.warning(f"Unknown email provider '{provider_name}', using console")
        return ConsoleProvider()
