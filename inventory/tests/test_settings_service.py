from django.test import TestCase

from inventory.models import AppSetting
from inventory.services import AppSettingService, ValidationError


class AppSettingServiceTests(TestCase):

    def test_prevent_negative_issue_defaults_to_true(self):
        self.assertTrue(AppSettingService.prevent_negative_issue())

        AppSettingService.set("preventNegativeIssue", "false")
        self.assertTrue(AppSettingService.prevent_negative_issue())

        AppSettingService.set("preventNegativeIssue", False)
        self.assertFalse(AppSettingService.prevent_negative_issue())

    def test_alert_recipients_parsing(self):
        self.assertEqual(AppSettingService.alert_recipients(), [])

        AppSettingService.set("alertEmailRecipients", "ops@example.com")
        self.assertEqual(AppSettingService.alert_recipients(), [])

        AppSettingService.set("alertEmailRecipients", [" ops@example.com ", "", 42, None, "lead@example.com"])
        self.assertEqual(AppSettingService.alert_recipients(), ["ops@example.com", "lead@example.com"])

    def test_set_upserts_by_key(self):
        AppSettingService.set("preventNegativeIssue", True)
        AppSettingService.set("preventNegativeIssue", False)

        self.assertEqual(AppSetting.objects.filter(key="preventNegativeIssue").count(), 1)
        self.assertIs(AppSettingService.get("preventNegativeIssue"), False)

    def test_set_many_and_get_all(self):
        result = AppSettingService.set_many({"b": 1, "a": ["x"]})

        self.assertEqual(result["updated_keys"], ["a", "b"])
        self.assertEqual(AppSettingService.get_all(), {"a": ["x"], "b": 1})
        self.assertEqual(AppSettingService.get("missing", "fallback"), "fallback")

    def test_invalid_payloads(self):
        with self.assertRaises(ValidationError):
            AppSettingService.set_many(["not", "a", "dict"])
        with self.assertRaises(ValidationError):
            AppSettingService.set("", True)
