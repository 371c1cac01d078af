import json
from decimal import Decimal

from django.core import mail
from django.test import TestCase

from inventory.models import AlertLog, InventoryRecord, StockTransaction
from inventory.services import AppSettingService
from inventory.tests.helpers import make_user, make_record


class ApiTestCase(TestCase):

    def setUp(self):
        self.user = make_user("clerk")
        self.manager = make_user("boss", role="manager")
        self.admin = make_user("root", role="admin")
        self.record = make_record(self.admin, barcode="B1", qty=10, level=5)

    def post_json(self, url, data=None, **extra):
        return self.client.post(url, data=json.dumps(data or {}), content_type="application/json", **extra)

    def patch_json(self, url, data):
        return self.client.patch(url, data=json.dumps(data), content_type="application/json")


class AuthRequiredTests(ApiTestCase):

    def test_endpoints_require_session(self):
        for url in ("/api/inventory/list", "/api/alerts/list", "/api/alerts/active", "/api/settings",
                    "/api/inventory/history", "/api/alerts/notify"):
            response = self.client.get(url)
            self.assertEqual(response.status_code, 401, url)
            self.assertEqual(response.json()["error"], "Unauthorized")

        response = self.post_json("/api/inventory/receive", {"barcode": "B1", "warehouseName": "Main", "quantity": 1})
        self.assertEqual(response.status_code, 401)


class MovementViewTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.client.force_login(self.user)

    def test_receive(self):
        response = self.post_json("/api/inventory/receive", {
            "barcode": "B1", "warehouseName": "Main", "quantity": "2.5", "referenceDoc": "PO-7",
        })

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["ok"])
        self.assertTrue(StockTransaction.objects.filter(pk=body["id"], reference_doc="PO-7").exists())
        self.record.refresh_from_db()
        self.assertEqual(self.record.stock_qty, Decimal("12.5"))

    def test_issue_crossing_threshold_emails_recipients(self):
        AppSettingService.set("alertEmailRecipients", ["ops@example.com"])

        with self.captureOnCommitCallbacks(execute=True):
            response = self.post_json("/api/inventory/issue", {
                "barcode": "B1", "warehouseName": "Main", "quantity": 6,
            })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(AlertLog.objects.get().priority_level, "medium")
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, "[Low stock] Widget (B1)")

    def test_blocked_negative_issue_is_400(self):
        response = self.post_json("/api/inventory/issue", {
            "barcode": "B1", "warehouseName": "Main", "quantity": 50,
        })

        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["code"], "negative_stock")
        self.assertEqual(
            body["error"], "Issuing this quantity would result in negative stock. Reduce the quantity."
        )
        self.assertEqual(AlertLog.objects.get().alert_type, "negative_stock")

    def test_validation_and_not_found(self):
        response = self.post_json("/api/inventory/receive", {"barcode": "B1", "warehouseName": "Main", "quantity": 0})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["details"]["field"], "quantity")

        response = self.post_json("/api/inventory/receive", {"barcode": "ZZ", "warehouseName": "Main", "quantity": 1})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "not_found")

        response = self.client.post("/api/inventory/receive", data="{not json", content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_transfer_forbidden_for_user(self):
        response = self.post_json("/api/inventory/transfer", {
            "barcode": "B1", "fromWarehouse": "Main", "toWarehouse": "Annex", "quantity": 1,
        })
        self.assertEqual(response.status_code, 403)

    def test_transfer_as_manager(self):
        self.client.force_login(self.manager)

        response = self.post_json("/api/inventory/transfer", {
            "barcode": "B1", "fromWarehouse": "Main", "toWarehouse": "Annex", "quantity": 3,
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(InventoryRecord.objects.get(warehouse_name="Annex").stock_qty, Decimal("3"))

        response = self.post_json("/api/inventory/transfer", {
            "barcode": "B1", "fromWarehouse": "Main", "toWarehouse": "Annex", "quantity": 100,
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "insufficient_stock")


class RecordViewTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.client.force_login(self.user)

    def test_create_lookup_and_duplicate(self):
        payload = {"barcode": "N1", "warehouseName": "Main", "itemName": "Nut", "stockQty": 7, "stockAlertLevel": 2}

        response = self.post_json("/api/inventory/create", payload)
        self.assertEqual(response.status_code, 201)
        record_id = response.json()["id"]

        response = self.client.get("/api/inventory/lookup", {"barcode": "N1", "warehouseName": "Main"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["record"]["id"], record_id)
        self.assertEqual(response.json()["record"]["stock_qty"], "7")

        self.assertEqual(self.post_json("/api/inventory/create", payload).status_code, 400)

    def test_update_alert_level(self):
        response = self.patch_json("/api/inventory/update-alert", {"id": self.record.id, "stockAlertLevel": 3})
        self.assertEqual(response.status_code, 200)
        self.record.refresh_from_db()
        self.assertEqual(self.record.stock_alert_level, Decimal("3"))

        response = self.patch_json("/api/inventory/update-alert", {"id": self.record.id, "stockAlertLevel": -1})
        self.assertEqual(response.status_code, 400)

        response = self.patch_json("/api/inventory/update-alert", {"id": 99999, "stockAlertLevel": 1})
        self.assertEqual(response.status_code, 404)

    def test_list_and_history(self):
        response = self.client.get("/api/inventory/list", {"q": "widget"})
        self.assertEqual(len(response.json()["records"]), 1)

        response = self.client.get("/api/inventory/history", {"barcode": "B1"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["transactions"][0]["transaction_type"], "adjustment")

        response = self.client.get("/api/inventory/history", {"type": "bogus"})
        self.assertEqual(response.status_code, 400)


class AlertViewTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.client.force_login(self.user)
        self.alert = AlertLog.objects.create(
            alert_type="low_stock", priority_level="medium", message="Low stock: test", inventory=self.record,
        )

    def test_list_and_acknowledge(self):
        response = self.client.get("/api/alerts/list", {"acknowledged": "false", "sort": "priority"})
        self.assertEqual(response.json()["total"], 1)

        response = self.client.post(f"/api/alerts/{self.alert.id}/acknowledge")
        self.assertEqual(response.status_code, 200)
        self.alert.refresh_from_db()
        self.assertTrue(self.alert.acknowledged)

        response = self.client.post("/api/alerts/99999/acknowledge")
        self.assertEqual(response.status_code, 404)

    def test_active(self):
        response = self.client.get("/api/alerts/active")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["counts"]["low_stock"], 0)


class NotifyViewTests(ApiTestCase):

    def test_cron_key(self):
        AppSettingService.set("alertEmailRecipients", ["ops@example.com"])
        make_record(self.admin, barcode="L1", qty=1, level=5)

        response = self.client.post("/api/alerts/notify", HTTP_X_API_KEY="wrong")
        self.assertEqual(response.status_code, 401)

        response = self.client.post("/api/alerts/notify", HTTP_X_API_KEY="test-cron-key")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["sent"], 1)
        self.assertEqual(len(mail.outbox), 1)

    def test_preview_needs_session(self):
        self.assertEqual(self.client.get("/api/alerts/notify", HTTP_X_API_KEY="test-cron-key").status_code, 401)

        self.client.force_login(self.user)
        response = self.client.get("/api/alerts/notify")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["email_configured"])


class SettingsViewTests(ApiTestCase):

    def test_only_admin_can_write(self):
        self.client.force_login(self.manager)
        response = self.post_json("/api/settings", {"preventNegativeIssue": False})
        self.assertEqual(response.status_code, 403)
        self.assertTrue(AppSettingService.prevent_negative_issue())

        self.client.force_login(self.admin)
        response = self.post_json("/api/settings", {"preventNegativeIssue": False})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["ok"])
        self.assertFalse(AppSettingService.prevent_negative_issue())

        response = self.client.get("/api/settings")
        self.assertEqual(response.json()["settings"], {"preventNegativeIssue": False})


class ErrorMappingTests(TestCase):

    def test_service_errors_map_to_status_codes(self):
        from inventory import services, views

        self.assertFalse(hasattr(services, "BusinessRuleError"))

        response = views.handle_service_error(services.ServiceError("Nope", "SOME_RULE"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.content), {"error": "Nope", "code": "some_rule"})

        response = views.handle_service_error(services.PermissionDeniedError())
        self.assertEqual(response.status_code, 403)

        with self.assertLogs("inventory.views", level="ERROR"):
            response = views.handle_service_error(RuntimeError("boom"))
        self.assertEqual(response.status_code, 500)
