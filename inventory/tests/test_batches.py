import json
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from django.utils import timezone

from inventory.models import AlertLog, Batch, BatchTransaction, StockTransaction
from inventory.services import (
    AlertEngine, ExpiryAlertService, StockMovementService,
    PermissionDeniedError, ValidationError,
)
from inventory.tests.helpers import make_user, make_record, RecordingDispatcher, StaticSettings


def build_service():
    store = StaticSettings()
    engine = AlertEngine(settings_store=store, dispatcher=RecordingDispatcher())
    return StockMovementService(settings_store=store, alert_engine=engine)


def in_days(days):
    return (timezone.localdate() + timedelta(days=days)).isoformat()


class BatchReceiveTests(TestCase):

    def setUp(self):
        self.manager = make_user("boss", role="manager")
        self.service = build_service()
        self.record = make_record(self.manager, barcode="M1", item_name="Milk", qty=10, level=5)

    def receive(self, batch_number="LOT-1", expiry_days=90, quantity=4, **kwargs):
        return self.service.receive_batch(
            "M1", "Main", quantity, self.manager,
            enable_batch_tracking=True,
            batch_number=batch_number,
            expiry_date=in_days(expiry_days),
            **kwargs,
        )

    def test_receive_creates_batch_and_both_ledger_rows(self):
        result = self.receive(reference_doc="PO-9", supplier_info="Dairy Co", cost_per_unit="1.25")

        self.record.refresh_from_db()
        self.assertTrue(result["ok"])
        self.assertEqual(self.record.stock_qty, Decimal("14"))

        batch = Batch.objects.get(pk=result["batch_id"])
        self.assertEqual(batch.inventory, self.record)
        self.assertEqual(batch.quantity_received, Decimal("4"))
        self.assertEqual(batch.quantity_remaining, Decimal("4"))
        self.assertEqual(batch.supplier_info, "Dairy Co")
        self.assertEqual(batch.cost_per_unit, Decimal("1.25"))

        txn = StockTransaction.objects.get(pk=result["id"])
        self.assertEqual(txn.transaction_type, StockTransaction.TransactionType.RECEIVE)
        self.assertEqual(txn.reference_doc, "PO-9")

        batch_txn = batch.transactions.get()
        self.assertEqual(batch_txn.quantity, Decimal("4"))
        self.assertEqual(batch_txn.reason, "Initial batch creation")
        self.assertFalse(AlertLog.objects.exists())

    def test_duplicate_batch_number_changes_nothing(self):
        self.receive()

        with self.assertRaises(ValidationError) as ctx:
            self.receive(quantity=6)

        self.assertEqual(ctx.exception.field, "batchNumber")
        self.assertEqual(ctx.exception.message, "Batch number already exists. Please use a unique batch number.")
        self.record.refresh_from_db()
        self.assertEqual(self.record.stock_qty, Decimal("14"))
        self.assertEqual(Batch.objects.count(), 1)

    def test_batch_number_and_expiry_are_required(self):
        with self.assertRaises(ValidationError) as ctx:
            self.receive(batch_number="")
        self.assertEqual(ctx.exception.field, "batchNumber")

        with self.assertRaises(ValidationError) as ctx:
            self.service.receive_batch("M1", "Main", 1, self.manager, enable_batch_tracking=True,
                                       batch_number="LOT-2")
        self.assertEqual(ctx.exception.field, "expiryDate")

        self.assertFalse(Batch.objects.exists())

    def test_failed_batch_ledger_write_rolls_back_receive(self):
        with mock.patch.object(BatchTransaction.objects, "create", side_effect=RuntimeError("db gone")):
            with self.assertRaises(RuntimeError):
                self.receive()

        self.record.refresh_from_db()
        self.assertEqual(self.record.stock_qty, Decimal("10"))
        self.assertFalse(Batch.objects.exists())
        self.assertEqual(StockTransaction.objects.count(), 1)

    def test_expiry_alert_windows(self):
        cases = [
            ("FAR", 31, None),
            ("MONTH", 30, "low"),
            ("TWO-WEEKS", 14, "medium"),
            ("WEEK", 7, "high"),
            ("GONE", -3, "high"),
        ]
        for batch_number, days, priority in cases:
            result = self.receive(batch_number=batch_number, expiry_days=days, quantity=1)
            alert = AlertLog.objects.filter(batch_id=result["batch_id"]).first()
            if priority is None:
                self.assertIsNone(alert, batch_number)
            else:
                self.assertEqual(alert.alert_type, AlertLog.AlertType.EXPIRING)
                self.assertEqual(alert.priority_level, priority, batch_number)
                self.assertEqual(alert.inventory, self.record)

        self.assertEqual(
            AlertLog.objects.get(batch__batch_number="WEEK").message, "Batch WEEK of Milk expires in 7 days"
        )
        self.assertEqual(
            AlertLog.objects.get(batch__batch_number="GONE").message, "Batch GONE of Milk has expired 3 days ago"
        )

    def test_plain_user_cannot_receive_batches(self):
        clerk = make_user("clerk")
        with self.assertRaises(PermissionDeniedError):
            self.service.receive_batch("M1", "Main", 1, clerk, enable_batch_tracking=True,
                                       batch_number="LOT-1", expiry_date=in_days(30))

    def test_without_tracking_is_a_plain_receive(self):
        result = self.service.receive_batch("M1", "Main", 2, self.manager)

        self.record.refresh_from_db()
        self.assertIsNone(result["batch_id"])
        self.assertEqual(self.record.stock_qty, Decimal("12"))
        self.assertFalse(Batch.objects.exists())

    def test_batch_ledger_rows_are_immutable(self):
        self.receive()
        row = BatchTransaction.objects.get()

        row.reason = "edited"
        with self.assertRaises(ValueError):
            row.save()
        with self.assertRaises(ValueError):
            row.delete()


class BatchExpiryScanTests(TestCase):

    def setUp(self):
        self.manager = make_user("boss", role="manager")
        self.service = build_service()
        make_record(self.manager, barcode="M1", item_name="Milk", qty=10, level=5)

    def test_expiring_batches_with_stock_are_listed(self):
        for batch_number, days in (("SOON", 10), ("LATER", 45), ("EMPTY", 3)):
            self.service.receive_batch("M1", "Main", 1, self.manager, enable_batch_tracking=True,
                                       batch_number=batch_number, expiry_date=in_days(days))
        Batch.objects.filter(batch_number="EMPTY").update(quantity_remaining=0)

        rows = [row for row in ExpiryAlertService.expiring_rows() if "batch" in row]

        self.assertEqual([row["batch"]["batch_number"] for row in rows], ["SOON"])
        self.assertEqual(rows[0]["priority"], "medium")
        self.assertEqual(rows[0]["days_left"], 10)
        self.assertEqual(rows[0]["inventory"]["barcode"], "M1")


class BatchViewTests(TestCase):

    def setUp(self):
        self.manager = make_user("boss", role="manager")
        self.clerk = make_user("clerk")
        make_record(self.manager, barcode="M1", item_name="Milk", qty=10, level=5)

    def post_batch(self, **data):
        payload = {"barcode": "M1", "warehouseName": "Main", "quantity": 3, "enableBatchTracking": True,
                   "batchNumber": "LOT-1", "expiryDate": in_days(60)}
        payload.update(data)
        return self.client.post("/api/inventory/receive-batch", data=json.dumps(payload),
                                content_type="application/json")

    def test_receive_batch_and_list(self):
        self.client.force_login(self.manager)

        response = self.post_batch()
        self.assertEqual(response.status_code, 200)
        batch_id = response.json()["batch_id"]

        response = self.post_batch()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["details"]["field"], "batchNumber")

        response = self.client.get("/api/inventory/batches", {"barcode": "M1"})
        self.assertEqual(response.status_code, 200)
        batches = response.json()["batches"]
        self.assertEqual([b["id"] for b in batches], [batch_id])
        self.assertEqual(batches[0]["quantity_remaining"], "3")

        response = self.client.get(f"/api/inventory/batches/{batch_id}")
        self.assertEqual(response.json()["batch"]["transactions"][0]["transaction_type"], "receive")

        self.assertEqual(self.client.get("/api/inventory/batches/99999").status_code, 404)

    def test_plain_user_is_forbidden(self):
        self.client.force_login(self.clerk)
        self.assertEqual(self.post_batch().status_code, 403)
