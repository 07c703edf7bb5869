"""Unit tests for commune_api.services.mailer with smtplib mocked out."""

import smtplib
import unittest
from unittest.mock import MagicMock, patch

from pydantic import SecretStr

from commune_api.core.errors import ServiceUnavailable, UpstreamError
from commune_api.services.mailer import SmtpMailer, build_reset_link


def _settings(host: str | None = "smtp.example.com") -> MagicMock:
    settings = MagicMock()
    settings.SMTP_HOST = host
    settings.SMTP_PORT = 587
    settings.SMTP_USERNAME = "mailer"
    settings.SMTP_PASSWORD = SecretStr("pw")
    settings.SMTP_USE_TLS = True
    settings.SMTP_TIMEOUT_SEC = 15.0
    settings.MAIL_FROM = "no-reply@mlomp.sn"
    settings.ADMIN_EMAIL = "contact@mlomp.sn"
    settings.PASSWORD_RESET_URL = "https://mlomp.sn/reset-password"
    settings.RESET_TOKEN_EXPIRE_MINUTES = 60
    return settings


class TestBuildResetLink(unittest.TestCase):
    def test_appends_query(self) -> None:
        self.assertEqual(build_reset_link("https://x/reset", "a.b"), "https://x/reset?token=a.b")
        self.assertEqual(build_reset_link("https://x/reset?lang=fr", "t"), "https://x/reset?lang=fr&token=t")


class TestSmtpMailer(unittest.TestCase):
    def test_not_configured(self) -> None:
        with self.assertRaises(ServiceUnavailable):
            SmtpMailer(_settings(host=None)).send_password_reset("a@example.com", "tok")

    @patch("commune_api.services.mailer.smtplib.SMTP")
    def test_reset_mail_contains_link(self, mock_smtp: MagicMock) -> None:
        smtp = mock_smtp.return_value.__enter__.return_value
        SmtpMailer(_settings()).send_password_reset("a@example.com", "tok")
        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=15.0)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("mailer", "pw")
        msg = smtp.send_message.call_args[0][0]
        self.assertEqual(msg["To"], "a@example.com")
        self.assertIn("https://mlomp.sn/reset-password?token=tok", msg.get_content())

    @patch("commune_api.services.mailer.smtplib.SMTP")
    def test_contact_notification_goes_to_admin_and_sender(self, mock_smtp: MagicMock) -> None:
        smtp = mock_smtp.return_value.__enter__.return_value
        contact = MagicMock()
        contact.name, contact.email, contact.subject, contact.message = "Awa", "awa@example.com", "Hello", "Body"
        SmtpMailer(_settings()).send_contact_notification(contact)
        recipients = [c[0][0]["To"] for c in smtp.send_message.call_args_list]
        self.assertEqual(recipients, ["contact@mlomp.sn", "awa@example.com"])
        self.assertEqual(smtp.send_message.call_args_list[0][0][0]["Reply-To"], "awa@example.com")

    @patch("commune_api.services.mailer.smtplib.SMTP")
    def test_failed_acknowledgement_does_not_raise(self, mock_smtp: MagicMock) -> None:
        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.send_message.side_effect = [None, smtplib.SMTPRecipientsRefused({"awa@example.com": (550, b"no")})]
        contact = MagicMock()
        contact.name, contact.email, contact.subject, contact.message = "Awa", "awa@example.com", "Hello", "Body"
        with self.assertLogs("commune_api.services.mailer", level="WARNING"):
            SmtpMailer(_settings()).send_contact_notification(contact)
        self.assertEqual(smtp.send_message.call_count, 2)

    @patch("commune_api.services.mailer.smtplib.SMTP")
    def test_failed_town_hall_copy_raises(self, mock_smtp: MagicMock) -> None:
        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.send_message.side_effect = smtplib.SMTPDataError(451, b"later")
        contact = MagicMock()
        contact.name, contact.email, contact.subject, contact.message = "Awa", "awa@example.com", "Hello", "Body"
        with self.assertRaises(UpstreamError):
            SmtpMailer(_settings()).send_contact_notification(contact)
        smtp.send_message.assert_called_once()

    @patch("commune_api.services.mailer.smtplib.SMTP")
    def test_smtp_failure_is_upstream(self, mock_smtp: MagicMock) -> None:
        mock_smtp.side_effect = smtplib.SMTPConnectError(421, b"busy")
        with self.assertRaises(UpstreamError):
            SmtpMailer(_settings()).send("a@example.com", "s", "b")


if __name__ == "__main__":
    unittest.main()
