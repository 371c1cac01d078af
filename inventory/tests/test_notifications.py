from unittest import mock

from django.core import mail
from django.test import TestCase, override_settings

from inventory.services import (
    AlertEngine, NotificationDispatcher, MailTransport, AlertNotice, DispatchStatus,
)
from inventory.tests.helpers import make_user, make_record, StaticSettings


class BrokenTransport(MailTransport):
    def send(self, recipients, subject, html):
        raise ConnectionRefusedError("smtp down")


class DispatcherTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.record = make_record(self.user, barcode="B1", item_name="Bolt", qty=1, level=5)
        self.store = StaticSettings(recipients=["ops@example.com", "lead@example.com"])
        self.dispatcher = NotificationDispatcher(settings_store=self.store, run_async=False)
        self.alert = AlertEngine(settings_store=self.store, dispatcher=self.dispatcher).evaluate_low_stock(self.record)

    def test_send_without_recipients_is_skipped(self):
        result = self.dispatcher.send([], "subject", "<p>x</p>")

        self.assertEqual(result.status, DispatchStatus.SKIPPED)
        self.assertEqual(len(mail.outbox), 0)

    @override_settings(
        EMAIL_BACKEND="django.core.mail.backends.smtp.EmailBackend",
        EMAIL_HOST="", EMAIL_HOST_USER="", EMAIL_HOST_PASSWORD="",
    )
    def test_unconfigured_smtp_is_skipped(self):
        result = self.dispatcher.send(["ops@example.com"], "subject", "<p>x</p>")
        self.assertTrue(result.skipped)

    def test_notify_alert_renders_email(self):
        result = self.dispatcher.notify_alert(self.alert)

        self.assertTrue(result.ok)
        self.assertEqual(result.recipients, 2)
        message = mail.outbox[0]
        self.assertEqual(message.subject, "[Low stock] Bolt (B1)")
        self.assertEqual(message.to, ["ops@example.com", "lead@example.com"])
        html, mimetype = message.alternatives[0]
        self.assertEqual(mimetype, "text/html")
        self.assertIn("Bolt", html)
        self.assertIn("MEDIUM", html)

    def test_transport_failure_returns_error(self):
        dispatcher = NotificationDispatcher(
            settings_store=self.store, transport=BrokenTransport(), run_async=False
        )

        result = dispatcher.notify_alert(self.alert)

        self.assertEqual(result.status, DispatchStatus.ERROR)
        self.assertIn("smtp down", result.error)

    def test_submit_records_result(self):
        self.dispatcher.submit(self.alert)

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(self.dispatcher.results[-1].status, DispatchStatus.OK)
        self.assertEqual(self.dispatcher.results[-1].alert_id, self.alert.pk)

    def test_submit_without_recipients_is_skipped(self):
        dispatcher = NotificationDispatcher(settings_store=StaticSettings(), run_async=False)

        dispatcher.submit(self.alert)

        self.assertTrue(dispatcher.results[-1].skipped)
        self.assertEqual(len(mail.outbox), 0)

    def test_submit_failure_is_recorded_not_raised(self):
        dispatcher = NotificationDispatcher(
            settings_store=self.store, transport=BrokenTransport(), run_async=False
        )

        dispatcher.submit(self.alert)

        self.assertEqual(dispatcher.results[-1].status, DispatchStatus.ERROR)

    def test_async_submit_queues_until_drained(self):
        dispatcher = NotificationDispatcher(settings_store=self.store, run_async=True)

        with mock.patch.object(dispatcher, "start"):
            dispatcher.submit(self.alert)

        self.assertEqual(dispatcher.pending(), 1)
        self.assertEqual(len(mail.outbox), 0)

        self.assertEqual(dispatcher.drain(), 1)
        self.assertEqual(dispatcher.pending(), 0)
        self.assertEqual(len(mail.outbox), 1)

    def test_result_channel_is_bounded(self):
        dispatcher = NotificationDispatcher(settings_store=StaticSettings(), run_async=False, result_buffer=3)

        for _ in range(5):
            dispatcher.submit(self.alert)

        self.assertEqual(len(dispatcher.results), 3)


class AlertNoticeTests(TestCase):

    def test_title_and_subject(self):
        user = make_user()
        record = make_record(user, barcode="X9", item_name="Glue", qty=0, level=0)
        notice = AlertNotice(
            alert_type="negative_stock", priority="high", message="m",
            item_name=record.item_name, barcode=record.barcode, warehouse=record.warehouse_name,
            created_at=record.created_at,
        )

        self.assertEqual(notice.title, "Negative stock")
        self.assertEqual(notice.subject, "[Negative stock] Glue (X9)")
