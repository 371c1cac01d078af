"""
Inventory Record Service - per (barcode, warehouse) stock records
"""
import logging
from datetime import date
from typing import Dict, Any

from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from inventory.models import InventoryRecord, StockTransaction
from inventory.services.base_service import (
    BaseService, success_response, paginate_queryset, format_quantity,
    to_decimal, ValidationError, NotFoundError, QUANTITY_STEP, MAX_QUANTITY,
)

logger = logging.getLogger(__name__)


def clean_text(value: Any, field: str, required: bool = True, max_length: int = 100) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    if required and not value:
        raise ValidationError(f"{field} is required", field)
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters", field)
    return value


def parse_level(value: Any, field: str = "stock_alert_level"):
    """Non-negative decimal, 0 allowed."""
    if value is None or value == "":
        return to_decimal(0)
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field)
    level = to_decimal(value, default=None)
    if level is None or not level.is_finite():
        raise ValidationError(f"{field} must be a number", field)
    if level < 0:
        raise ValidationError(f"{field} must be zero or greater", field)
    if level >= MAX_QUANTITY:
        raise ValidationError(f"{field} is out of range", field)
    return level.quantize(QUANTITY_STEP)


def parse_days(value: Any, field: str = "expire_date_alert") -> int:
    """Whole, non-negative number of days. 2.7 and True are rejected, "3" and 3.0 are not."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number of days", field)
    days = to_decimal(value, default=None)
    if days is None or not days.is_finite() or days != days.to_integral_value():
        raise ValidationError(f"{field} must be a whole number of days", field)
    if days < 0:
        raise ValidationError(f"{field} must be zero or greater", field)
    if days > 36500:
        raise ValidationError(f"{field} is out of range", field)
    return int(days)


def parse_date(value: Any, field: str = "expire_date"):
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"{field} must be a YYYY-MM-DD date", field)


class InventoryRecordService(BaseService):
    """Current stock per (barcode, warehouse). Quantities only move through the ledger."""

    model = InventoryRecord

    # ==================== SERIALIZATION ====================

    @classmethod
    def serialize(cls, record: InventoryRecord) -> Dict[str, Any]:
        return {
            "id": record.id,
            "barcode": record.barcode,
            "warehouse_name": record.warehouse_name,
            "item_name": record.item_name,
            "category": record.category,
            "unit": record.unit,
            "stock_qty": format_quantity(record.stock_qty),
            "stock_alert_level": format_quantity(record.stock_alert_level),
            "expire_date": record.expire_date.isoformat() if record.expire_date else None,
            "expire_date_alert": record.expire_date_alert,
            "is_low_stock": record.low_stock_enabled and record.stock_qty <= record.stock_alert_level,
            "created_at": record.created_at.isoformat() if record.created_at else None,
            "updated_at": record.updated_at.isoformat() if record.updated_at else None,
        }

    # ==================== LOOKUP ====================

    @classmethod
    def find(cls, barcode: str, warehouse_name: str):
        return cls.model.objects.filter(barcode=barcode, warehouse_name=warehouse_name).first()

    @classmethod
    def find_or_404(cls, barcode: str, warehouse_name: str) -> InventoryRecord:
        record = cls.find(barcode, warehouse_name)
        if record is None:
            raise NotFoundError("Inventory record", f"{barcode} @ {warehouse_name}")
        return record

    @classmethod
    def lookup(cls, barcode: str, warehouse_name: str) -> Dict[str, Any]:
        barcode = clean_text(barcode, "barcode")
        warehouse_name = clean_text(warehouse_name, "warehouseName")
        record = cls.find_or_404(barcode, warehouse_name)
        return success_response({"record": cls.serialize(record)})

    @classmethod
    def get(cls, record_id: int) -> Dict[str, Any]:
        return success_response({"record": cls.serialize(cls.get_or_404(record_id))})

    @classmethod
    def list(cls,
             search: str = None,
             warehouse_name: str = None,
             category: str = None,
             low_stock_only: bool = False,
             page: int = 1,
             per_page: int = 50) -> Dict[str, Any]:
        queryset = cls.model.objects.all()

        if search:
            queryset = queryset.filter(
                Q(item_name__icontains=search) |
                Q(barcode__icontains=search) |
                Q(category__icontains=search)
            )

        if warehouse_name:
            queryset = queryset.filter(warehouse_name=warehouse_name)

        if category:
            queryset = queryset.filter(category=category)

        if low_stock_only:
            queryset = queryset.filter(stock_alert_level__gt=0, stock_qty__lte=F("stock_alert_level"))

        records, pagination = paginate_queryset(queryset, page, per_page, max_per_page=200)

        return success_response({
            "records": [cls.serialize(r) for r in records],
            "pagination": pagination,
        })

    # ==================== CREATE / UPDATE ====================

    @classmethod
    @transaction.atomic
    def create(cls,
               barcode: str,
               warehouse_name: str,
               item_name: str,
               user,
               stock_qty: Any = 0,
               stock_alert_level: Any = 0,
               category: str = "",
               unit: str = "",
               expire_date: Any = None,
               expire_date_alert: Any = 0) -> Dict[str, Any]:
        barcode = clean_text(barcode, "barcode")
        warehouse_name = clean_text(warehouse_name, "warehouseName")
        item_name = clean_text(item_name, "itemName", max_length=200)
        category = clean_text(category, "category", required=False)
        unit = clean_text(unit, "unit", required=False, max_length=20)

        opening = parse_level(stock_qty, "stockQty")
        alert_level = parse_level(stock_alert_level, "stockAlertLevel")
        expire_on = parse_date(expire_date, "expireDate")

        days = parse_days(expire_date_alert, "expireDateAlert")

        if cls.model.objects.filter(barcode=barcode, warehouse_name=warehouse_name).exists():
            raise ValidationError(
                f"Item {barcode} already exists in warehouse {warehouse_name}", "barcode"
            )

        try:
            with transaction.atomic():
                record = cls.model.objects.create(
                    barcode=barcode,
                    warehouse_name=warehouse_name,
                    item_name=item_name,
                    category=category,
                    unit=unit,
                    stock_qty=opening,
                    stock_alert_level=alert_level,
                    expire_date=expire_on,
                    expire_date_alert=days,
                    created_by=user,
                )
        except IntegrityError:
            raise ValidationError(
                f"Item {barcode} already exists in warehouse {warehouse_name}", "barcode"
            )

        if opening > 0:
            StockTransaction.objects.create(
                inventory=record,
                transaction_type=StockTransaction.TransactionType.ADJUSTMENT,
                quantity=opening,
                quantity_before=0,
                quantity_after=opening,
                transaction_date=timezone.now(),
                reason="Opening balance",
                processed_by=user,
            )

        logger.info(f"Inventory record created: {barcode} @ {warehouse_name} (qty {format_quantity(opening)})")

        return success_response({
            "ok": True,
            "id": record.id,
            "record": cls.serialize(record),
        }, "Inventory record created")

    @classmethod
    def create_from(cls, source: InventoryRecord, warehouse_name: str, user) -> InventoryRecord:
        """Empty copy of a record in another warehouse, used as a transfer destination."""
        record = cls.model.objects.create(
            barcode=source.barcode,
            warehouse_name=warehouse_name,
            item_name=source.item_name,
            category=source.category,
            unit=source.unit,
            stock_qty=0,
            stock_alert_level=source.stock_alert_level,
            expire_date=source.expire_date,
            expire_date_alert=source.expire_date_alert,
            created_by=user,
        )
        logger.info(f"Inventory record created for transfer: {source.barcode} @ {warehouse_name}")
        return record

    @classmethod
    def find_or_create_from(cls, source: InventoryRecord, warehouse_name: str, user) -> InventoryRecord:
        """
        Transfer destination for source in warehouse_name, created when missing.
        A concurrent creation of the same row loses to the unique constraint and is re-read.
        """
        record = cls.find(source.barcode, warehouse_name)
        if record is not None:
            return record

        try:
            with transaction.atomic():
                return cls.create_from(source, warehouse_name, user)
        except IntegrityError:
            record = cls.find(source.barcode, warehouse_name)
            if record is None:
                raise
            logger.info(f"Transfer destination {source.barcode} @ {warehouse_name} created concurrently, reusing it")
            return record

    @classmethod
    def update_alert_level(cls, record_id: Any, stock_alert_level: Any) -> Dict[str, Any]:
        if record_id in (None, ""):
            raise ValidationError("id is required", "id")
        if stock_alert_level in (None, ""):
            raise ValidationError("stockAlertLevel is required", "stockAlertLevel")

        level = parse_level(stock_alert_level, "stockAlertLevel")
        record = cls.get_or_404(record_id)

        record.stock_alert_level = level
        record.save(update_fields=["stock_alert_level", "updated_at"])

        logger.info(f"Alert level for record {record.pk} set to {format_quantity(level)}")

        return success_response({
            "ok": True,
            "id": record.id,
            "record": cls.serialize(record),
        }, "Alert level updated")
