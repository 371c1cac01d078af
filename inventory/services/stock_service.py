"""
Stock Movement Service - receive / batch receive / issue / transfer

Every movement is one atomic block: a conditional F() update on the record
followed by the ledger insert. Alert evaluation runs after the block against
the post-update quantity and never changes the outcome of the movement.
"""
import logging
import threading
from decimal import Decimal
from typing import Dict, Any, Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from accounts.roles import is_manager_or_admin
from inventory.models import Batch, BatchTransaction, InventoryRecord, StockTransaction
from inventory.services.alert_service import AlertEngine
from inventory.services.base_service import (
    success_response, parse_quantity, format_quantity,
    ValidationError, InsufficientStockError, NegativeStockError, PermissionDeniedError,
)
from inventory.services.record_service import InventoryRecordService, clean_text, parse_date, parse_level

logger = logging.getLogger(__name__)

DUPLICATE_BATCH_MESSAGE = "Batch number already exists. Please use a unique batch number."


class StockMovementService:

    def __init__(self, settings_store=None, alert_engine: Optional[AlertEngine] = None):
        if settings_store is None:
            from inventory.services.settings_service import AppSettingService
            settings_store = AppSettingService
        self.settings_store = settings_store
        self.alerts = alert_engine or AlertEngine(settings_store=settings_store)

    # ==================== HELPERS ====================

    @staticmethod
    def _apply(record: InventoryRecord,
               delta: Decimal,
               transaction_type: str,
               user,
               reference_doc: str = None,
               reason: str = None,
               guard: bool = False,
               from_warehouse: str = "",
               to_warehouse: str = "") -> Optional[StockTransaction]:
        """
        Move record.stock_qty by delta and append the ledger row.
        With guard, the update only matches while stock_qty >= -delta; returns None when it doesn't.
        Must run inside transaction.atomic().
        """
        rows = InventoryRecord.objects.filter(pk=record.pk)
        if guard:
            rows = rows.filter(stock_qty__gte=-delta)

        updated = rows.update(stock_qty=F("stock_qty") + delta, updated_at=timezone.now())
        if not updated:
            return None

        record.refresh_from_db(fields=["stock_qty", "updated_at"])
        quantity_after = record.stock_qty

        return StockTransaction.objects.create(
            inventory=record,
            transaction_type=transaction_type,
            quantity=abs(delta),
            quantity_before=quantity_after - delta,
            quantity_after=quantity_after,
            transaction_date=timezone.now(),
            reference_doc=reference_doc or None,
            reason=reason or None,
            from_warehouse=from_warehouse,
            to_warehouse=to_warehouse,
            processed_by=user,
        )

    @staticmethod
    def _result(txn: StockTransaction, record: InventoryRecord, message: str) -> Dict[str, Any]:
        return success_response({
            "ok": True,
            "id": txn.id,
            "inventory_id": record.id,
            "stock_qty": format_quantity(record.stock_qty),
        }, message)

    # ==================== RECEIVE ====================

    def receive(self,
                barcode: str,
                warehouse_name: str,
                quantity: Any,
                user,
                reference_doc: str = None,
                reason: str = None) -> Dict[str, Any]:
        barcode = clean_text(barcode, "barcode")
        warehouse_name = clean_text(warehouse_name, "warehouseName")
        qty = parse_quantity(quantity)
        record = InventoryRecordService.find_or_404(barcode, warehouse_name)

        with transaction.atomic():
            txn = self._apply(
                record, qty, StockTransaction.TransactionType.RECEIVE, user, reference_doc, reason
            )

        logger.info(
            f"Received {format_quantity(qty)} of {barcode} @ {warehouse_name}, "
            f"now {format_quantity(record.stock_qty)} (txn #{txn.pk})"
        )

        self.alerts.evaluate_low_stock(record)

        return self._result(txn, record, "Stock received")

    # ==================== BATCH RECEIVE ====================

    def receive_batch(self,
                      barcode: str,
                      warehouse_name: str,
                      quantity: Any,
                      user,
                      reference_doc: str = None,
                      reason: str = None,
                      enable_batch_tracking: bool = False,
                      batch_number: str = None,
                      expiry_date: Any = None,
                      manufacture_date: Any = None,
                      supplier_info: str = None,
                      lot_number: str = None,
                      cost_per_unit: Any = None,
                      notes: str = None) -> Dict[str, Any]:
        """
        Receive stock, optionally as a tracked batch. The batch, its first batch
        ledger row and the stock movement commit together or not at all.
        """
        if not is_manager_or_admin(user):
            raise PermissionDeniedError("Only admins and managers can receive batches")

        if not enable_batch_tracking:
            result = self.receive(barcode, warehouse_name, quantity, user, reference_doc, reason)
            result["batch_id"] = None
            return result

        barcode = clean_text(barcode, "barcode")
        warehouse_name = clean_text(warehouse_name, "warehouseName")
        qty = parse_quantity(quantity)
        batch_number = clean_text(batch_number, "batchNumber")
        expires_on = parse_date(expiry_date, "expiryDate")
        if expires_on is None:
            raise ValidationError("expiryDate is required for batch tracking", "expiryDate")
        manufactured_on = parse_date(manufacture_date, "manufactureDate")
        supplier_info = clean_text(supplier_info, "supplierInfo", required=False, max_length=200)
        lot_number = clean_text(lot_number, "lotNumber", required=False)
        unit_cost = None if cost_per_unit in (None, "") else parse_level(cost_per_unit, "costPerUnit")

        if Batch.objects.filter(batch_number=batch_number).exists():
            raise ValidationError(DUPLICATE_BATCH_MESSAGE, "batchNumber")

        record = InventoryRecordService.find_or_404(barcode, warehouse_name)

        with transaction.atomic():
            txn = self._apply(
                record, qty, StockTransaction.TransactionType.RECEIVE, user, reference_doc, reason
            )

            try:
                with transaction.atomic():
                    batch = Batch.objects.create(
                        batch_number=batch_number,
                        inventory=record,
                        warehouse_name=warehouse_name,
                        quantity_received=qty,
                        quantity_remaining=qty,
                        manufacture_date=manufactured_on,
                        expiry_date=expires_on,
                        supplier_info=supplier_info,
                        lot_number=lot_number,
                        cost_per_unit=unit_cost,
                        notes=notes or "",
                        created_by=user,
                    )
            except IntegrityError:
                raise ValidationError(DUPLICATE_BATCH_MESSAGE, "batchNumber")

            BatchTransaction.objects.create(
                batch=batch,
                transaction_type=StockTransaction.TransactionType.RECEIVE,
                quantity=qty,
                transaction_date=txn.transaction_date,
                reason=reason or "Initial batch creation",
                reference_doc=reference_doc or None,
                processed_by=user,
            )

        logger.info(
            f"Received batch {batch_number} ({format_quantity(qty)} of {barcode} @ {warehouse_name}, "
            f"expires {expires_on.isoformat()}), now {format_quantity(record.stock_qty)} (txn #{txn.pk})"
        )

        self.alerts.batch_expiry(batch)
        self.alerts.evaluate_low_stock(record)

        result = self._result(txn, record, "Stock received with batch tracking")
        result["batch_id"] = batch.id
        return result

    # ==================== ISSUE ====================

    def issue(self,
              barcode: str,
              warehouse_name: str,
              quantity: Any,
              user,
              reference_doc: str = None,
              reason: str = None) -> Dict[str, Any]:
        barcode = clean_text(barcode, "barcode")
        warehouse_name = clean_text(warehouse_name, "warehouseName")
        qty = parse_quantity(quantity)
        record = InventoryRecordService.find_or_404(barcode, warehouse_name)

        prevent_negative = self.settings_store.prevent_negative_issue()

        alerted = record.stock_qty - qty < 0
        if alerted:
            self.alerts.negative_stock(record, qty)
            if prevent_negative:
                logger.warning(
                    f"Blocked issue of {format_quantity(qty)} of {barcode} @ {warehouse_name}: "
                    f"only {format_quantity(record.stock_qty)} available"
                )
                raise NegativeStockError(qty, record.stock_qty)

        with transaction.atomic():
            txn = self._apply(
                record, -qty, StockTransaction.TransactionType.ISSUE, user, reference_doc, reason,
                guard=prevent_negative,
            )

        if txn is None:
            # Drained by a concurrent issue after the check above
            record.refresh_from_db(fields=["stock_qty"])
            self.alerts.negative_stock(record, qty)
            logger.warning(
                f"Blocked issue of {format_quantity(qty)} of {barcode} @ {warehouse_name}: "
                f"stock changed to {format_quantity(record.stock_qty)}"
            )
            raise NegativeStockError(qty, record.stock_qty)

        if txn.quantity_after < 0 and not alerted:
            # Stock was drained concurrently and negative issues are allowed
            self.alerts.negative_stock(record, qty, available=txn.quantity_before)

        logger.info(
            f"Issued {format_quantity(qty)} of {barcode} @ {warehouse_name}, "
            f"now {format_quantity(record.stock_qty)} (txn #{txn.pk})"
        )

        self.alerts.evaluate_low_stock(record)

        return self._result(txn, record, "Stock issued")

    # ==================== TRANSFER ====================

    def transfer(self,
                 barcode: str,
                 from_warehouse: str,
                 to_warehouse: str,
                 quantity: Any,
                 user,
                 reference_doc: str = None,
                 reason: str = None) -> Dict[str, Any]:
        if not is_manager_or_admin(user):
            raise PermissionDeniedError("Only admins and managers can transfer stock")

        barcode = clean_text(barcode, "barcode")
        from_warehouse = clean_text(from_warehouse, "fromWarehouse")
        to_warehouse = clean_text(to_warehouse, "toWarehouse")
        qty = parse_quantity(quantity)

        if from_warehouse == to_warehouse:
            raise ValidationError("Source and destination warehouses must differ", "toWarehouse")

        source = InventoryRecordService.find_or_404(barcode, from_warehouse)

        with transaction.atomic():
            destination = InventoryRecordService.find_or_create_from(source, to_warehouse, user)

            outgoing = self._apply(
                source, -qty, StockTransaction.TransactionType.TRANSFER, user, reference_doc, reason,
                guard=True, from_warehouse=from_warehouse, to_warehouse=to_warehouse,
            )
            if outgoing is None:
                available = InventoryRecord.objects.values_list("stock_qty", flat=True).get(pk=source.pk)
                raise InsufficientStockError(source.item_name, qty, available)

            incoming = self._apply(
                destination, qty, StockTransaction.TransactionType.TRANSFER, user, reference_doc, reason,
                from_warehouse=from_warehouse, to_warehouse=to_warehouse,
            )

        logger.info(
            f"Transferred {format_quantity(qty)} of {barcode} from {from_warehouse} to {to_warehouse} "
            f"(txn #{outgoing.pk}/#{incoming.pk})"
        )

        self.alerts.evaluate_low_stock(source, label="Low stock after transfer", deduplicate=True)

        return success_response({
            "ok": True,
            "id": outgoing.id,
            "incoming_id": incoming.id,
            "from_stock_qty": format_quantity(source.stock_qty),
            "to_stock_qty": format_quantity(destination.stock_qty),
        }, "Stock transferred")


_service_instance: Optional[StockMovementService] = None
_service_lock = threading.Lock()


def get_stock_service() -> StockMovementService:
    global _service_instance
    with _service_lock:
        if _service_instance is None:
            _service_instance = StockMovementService()
        return _service_instance
