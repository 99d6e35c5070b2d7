"""
Email Infrastructure Tests
===========================

Unit tests for email service abstraction layer.
"""

from unittest.mock import MagicMock, patch

from django.core import mail
from django.test import TestCase, override_settings

from infrastructure.email import (
    EmailException,
    EmailFactory,
    EmailMessage,
    EmailServiceInterface,
    MockEmailService,
    SMTPEmailService,
)


def shipment_message(**overrides):
    fields = {
        "subject": "Your order #1001 has shipped",
        "body": "Track it here",
        "to": ["buyer@example.com"],
        "reply_to": ["shop@example.com"],
    }
    fields.update(overrides)
    return EmailMessage(**fields)


class EmailInterfaceTest(TestCase):
    """Test EmailServiceInterface contract."""

    def test_interface_is_abstract(self):
        """EmailServiceInterface should not be instantiable."""
        with self.assertRaises(TypeError):
            EmailServiceInterface()


class MockEmailServiceTest(TestCase):
    """Test MockEmailService implementation."""

    def setUp(self):
        self.email_service = MockEmailService()

    def test_send_email(self):
        """Sent messages are kept in the outbox."""
        message = shipment_message()

        result = self.email_service.send(message)

        self.assertTrue(result)
        self.assertEqual(self.email_service.get_sent_count(), 1)
        self.assertEqual(self.email_service.get_last_message(), message)

    def test_send_bulk_emails(self):
        messages = [shipment_message(to=[f"buyer{i}@example.com"]) for i in range(3)]

        count = self.email_service.send_bulk(messages)

        self.assertEqual(count, 3)
        self.assertEqual(self.email_service.get_last_message().to, ["buyer2@example.com"])

    def test_clear_sent_messages(self):
        self.email_service.send(shipment_message())

        self.email_service.clear_sent_messages()

        self.assertEqual(self.email_service.get_sent_count(), 0)
        self.assertIsNone(self.email_service.get_last_message())


class SMTPEmailServiceTest(TestCase):
    """SMTPEmailService against Django's locmem backend."""

    def setUp(self):
        self.email_service = SMTPEmailService()

    @override_settings(DEFAULT_FROM_EMAIL="Golden Market <orders@example.com>")
    def test_send_uses_default_sender_and_reply_to(self):
        service = SMTPEmailService()

        result = service.send(shipment_message(html_body="<p>Track it here</p>", headers={"X-Template": "tracking"}))

        self.assertTrue(result)
        self.assertEqual(len(mail.outbox), 1)
        sent = mail.outbox[0]
        self.assertEqual(sent.from_email, "Golden Market <orders@example.com>")
        self.assertEqual(sent.reply_to, ["shop@example.com"])
        self.assertEqual(sent.extra_headers["X-Template"], "tracking")
        self.assertEqual(sent.alternatives[0][1], "text/html")

    def test_explicit_sender_wins(self):
        self.email_service.send(shipment_message(from_email="shop@example.com"))

        self.assertEqual(mail.outbox[0].from_email, "shop@example.com")

    def test_send_failure_raises_email_exception(self):
        """Backend errors surface as EmailException."""
        with patch("infrastructure.email.smtp_service.EmailMultiAlternatives.send", side_effect=OSError("refused")):
            with self.assertRaises(EmailException) as ctx:
                self.email_service.send(shipment_message())

        self.assertIn("refused", str(ctx.exception))

    def test_send_bulk_reuses_one_connection(self):
        count = self.email_service.send_bulk([shipment_message(), shipment_message(to=["other@example.com"])])

        self.assertEqual(count, 2)
        self.assertEqual([m.to for m in mail.outbox], [["buyer@example.com"], ["other@example.com"]])

    def test_send_bulk_failure(self):
        connection = MagicMock()
        connection.send_messages.side_effect = OSError("smtp down")

        with patch("infrastructure.email.smtp_service.get_connection", return_value=connection):
            with self.assertRaises(EmailException):
                self.email_service.send_bulk([shipment_message()])


class EmailFactoryTest(TestCase):
    """Test EmailFactory."""

    def test_create_explicit_backends(self):
        self.assertIsInstance(EmailFactory.create("smtp"), SMTPEmailService)
        self.assertIsInstance(EmailFactory.create("mock"), MockEmailService)

    @override_settings(EMAIL_SERVICE_BACKEND="smtp")
    def test_create_from_settings(self):
        self.assertIsInstance(EmailFactory.create(), SMTPEmailService)

    def test_create_invalid_backend(self):
        with self.assertRaises(ValueError):
            EmailFactory.create("carrier-pigeon")
