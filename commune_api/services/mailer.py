"""Outbound email over SMTP: password-reset links and contact-form notifications."""

import logging
import smtplib
from email.message import EmailMessage
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlencode

from commune_api.core.errors import ServiceUnavailable, UpstreamError

if TYPE_CHECKING:
    from commune_api.core.config import Settings
    from commune_api.models.gallery import ContactMessage

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send_password_reset(self, to: str, token: str) -> None: ...

    def send_contact_notification(self, contact: "ContactMessage") -> None: ...


def _is_smtp_configured(settings: "Settings") -> bool:
    return bool(settings.SMTP_HOST and settings.MAIL_FROM)


def build_reset_link(base_url: str, token: str) -> str:
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'token': token})}"


class SmtpMailer:
    """Sends plain-text mail through the configured SMTP relay."""

    def __init__(self, settings: "Settings") -> None:
        self.settings = settings

    def send(self, to: str, subject: str, body: str, reply_to: str | None = None) -> None:
        """Deliver one message. Raises ServiceUnavailable or UpstreamError."""
        s = self.settings
        if not _is_smtp_configured(s):
            raise ServiceUnavailable("Email delivery is not configured (set SMTP_HOST).")
        msg = EmailMessage()
        msg["From"] = s.MAIL_FROM
        msg["To"] = to
        msg["Subject"] = subject
        if reply_to:
            msg["Reply-To"] = reply_to
        msg.set_content(body)
        try:
            with smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT_SEC) as smtp:
                if s.SMTP_USE_TLS:
                    smtp.starttls()
                if s.SMTP_USERNAME and s.SMTP_PASSWORD is not None:
                    smtp.login(s.SMTP_USERNAME, s.SMTP_PASSWORD.get_secret_value())
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "Email delivery failed",
                extra={"smtp_host": s.SMTP_HOST, "subject": subject, "reason": str(e)[:200]},
            )
            raise UpstreamError("Email delivery failed.") from e

    def send_password_reset(self, to: str, token: str) -> None:
        link = build_reset_link(self.settings.PASSWORD_RESET_URL, token)
        minutes = self.settings.RESET_TOKEN_EXPIRE_MINUTES
        self.send(
            to,
            "Password reset",
            "A password reset was requested for your account.\n\n"
            f"Open this link within {minutes} minutes to choose a new password:\n{link}\n\n"
            "If you did not request it, you can ignore this message.",
        )

    def send_contact_notification(self, contact: "ContactMessage") -> None:
        """
        Forward the message to the town hall and acknowledge it to the sender.

        Only the town-hall copy raises; a failed acknowledgement is logged.
        """
        self.send(
            self.settings.ADMIN_EMAIL,
            f"New contact message: {contact.subject}",
            f"From: {contact.name} <{contact.email}>\nSubject: {contact.subject}\n\n{contact.message}",
            reply_to=contact.email,
        )
        try:
            self.send(
                contact.email,
                "We received your message",
                f"Hello {contact.name},\n\n"
                f'We received your message "{contact.subject}" and will answer as soon as possible.\n\n'
                "The Commune of Mlomp",
            )
        except UpstreamError:
            logger.warning("Contact acknowledgement not sent", extra={"contact_id": contact.id})
