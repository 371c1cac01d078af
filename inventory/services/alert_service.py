import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Any, Optional, List

from django.db import transaction
from django.db.models import Case, F, IntegerField, Q, Value, When
from django.utils import timezone

from inventory.models import AlertLog, Batch, InventoryRecord
from inventory.services.base_service import (
    BaseService, success_response, paginate_queryset, format_quantity,
    ValidationError, NotFoundError,
)

logger = logging.getLogger(__name__)


def is_low_stock(record: InventoryRecord) -> bool:
    return record.stock_alert_level > 0 and record.stock_qty <= record.stock_alert_level


def low_stock_priority(stock_qty: Decimal) -> str:
    if stock_qty <= 0:
        return AlertLog.Priority.HIGH
    return AlertLog.Priority.MEDIUM


def low_stock_message(record: InventoryRecord, label: str = "Low stock") -> str:
    return (
        f"{label}: {record.item_name} ({record.barcode}) at {record.warehouse_name} - "
        f"{format_quantity(record.stock_qty)} <= alert {format_quantity(record.stock_alert_level)}"
    )


# Days before expiry at which a batch alerts
BATCH_EXPIRY_WINDOW = 30


def batch_expiry_priority(days: int) -> str:
    if days <= 7:
        return AlertLog.Priority.HIGH.value
    if days <= 14:
        return AlertLog.Priority.MEDIUM.value
    return AlertLog.Priority.LOW.value


def batch_expiry_message(batch: Batch, days: int) -> str:
    item_name = batch.inventory.item_name
    if days < 0:
        return f"Batch {batch.batch_number} of {item_name} has expired {abs(days)} days ago"
    return f"Batch {batch.batch_number} of {item_name} expires in {days} days"


def inventory_summary(record: InventoryRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "item_name": record.item_name,
        "barcode": record.barcode,
        "warehouse": record.warehouse_name,
        "stock_qty": format_quantity(record.stock_qty),
        "stock_alert_level": format_quantity(record.stock_alert_level),
        "expire_date": record.expire_date.isoformat() if record.expire_date else None,
        "expire_date_alert": record.expire_date_alert,
    }



def batch_summary(batch: Batch) -> Dict[str, Any]:
    return {
        "id": batch.id,
        "batch_number": batch.batch_number,
        "expiry_date": batch.expiry_date.isoformat(),
        "quantity_remaining": format_quantity(batch.quantity_remaining),
    }

class AlertEngine:
    """
    Turns stock movements into AlertLog rows.

    Alert creation is a side observation of a movement: any failure here is
    logged and swallowed, and notifications are handed to the dispatcher only
    after the surrounding transaction commits.
    """

    def __init__(self, settings_store=None, dispatcher=None):
        if settings_store is None:
            from inventory.services.settings_service import AppSettingService
            settings_store = AppSettingService
        self.settings_store = settings_store
        self._dispatcher = dispatcher

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            from inventory.services.notification_service import get_dispatcher
            self._dispatcher = get_dispatcher()
        return self._dispatcher

    def negative_stock(self,
                       record: InventoryRecord,
                       requested: Decimal,
                       available: Decimal = None) -> Optional[AlertLog]:
        if available is None:
            available = record.stock_qty
        message = (
            f"Attempted to issue {format_quantity(requested)} but only "
            f"{format_quantity(available)} available for {record.item_name} "
            f"({record.barcode}) at {record.warehouse_name}"
        )
        return self._create(
            record, AlertLog.AlertType.NEGATIVE_STOCK, AlertLog.Priority.HIGH, message
        )

    def evaluate_low_stock(self,
                           record: InventoryRecord,
                           label: str = "Low stock",
                           deduplicate: bool = False) -> Optional[AlertLog]:
        if not is_low_stock(record):
            return None

        if deduplicate:
            try:
                open_alert = AlertLog.objects.filter(
                    inventory=record,
                    alert_type=AlertLog.AlertType.LOW_STOCK,
                    acknowledged=False,
                ).exists()
            except Exception:
                logger.exception(f"Low stock lookup failed for record {record.pk}")
                return None
            if open_alert:
                return None

        return self._create(
            record,
            AlertLog.AlertType.LOW_STOCK,
            low_stock_priority(record.stock_qty),
            low_stock_message(record, label),
        )

    def batch_expiry(self, batch: Batch, today: date = None) -> Optional[AlertLog]:
        """Alert for a freshly received batch that expires within the batch window."""
        today = today or timezone.localdate()
        days = (batch.expiry_date - today).days
        if days > BATCH_EXPIRY_WINDOW:
            return None

        return self._create(
            batch.inventory,
            AlertLog.AlertType.EXPIRING,
            batch_expiry_priority(days),
            batch_expiry_message(batch, days),
            batch=batch,
        )

    def _create(self,
                record: InventoryRecord,
                alert_type: str,
                priority: str,
                message: str,
                batch: Batch = None) -> Optional[AlertLog]:
        try:
            with transaction.atomic():
                alert = AlertLog.objects.create(
                    alert_type=alert_type,
                    priority_level=priority,
                    message=message,
                    inventory=record,
                    batch=batch,
                    acknowledged=False,
                )
        except Exception:
            logger.exception(f"Could not record {alert_type} alert for record {record.pk}")
            return None

        logger.info(f"{alert_type} alert #{alert.pk} ({priority}): {message}")
        transaction.on_commit(lambda: self._dispatch(alert))
        return alert

    def _dispatch(self, alert: AlertLog) -> None:
        try:
            self.dispatcher.submit(alert)
        except Exception:
            logger.exception(f"Could not hand alert #{alert.pk} to the dispatcher")


class AlertService(BaseService):
    model = AlertLog

    PRIORITY_RANK = Case(
        When(priority_level=AlertLog.Priority.HIGH, then=Value(3)),
        When(priority_level=AlertLog.Priority.MEDIUM, then=Value(2)),
        default=Value(1),
        output_field=IntegerField(),
    )

    @classmethod
    def serialize(cls, alert: AlertLog) -> Dict[str, Any]:
        return {
            "id": alert.id,
            "type": alert.alert_type,
            "priority": alert.priority_level,
            "message": alert.message,
            "created_at": alert.created_at.isoformat() if alert.created_at else None,
            "acknowledged": alert.acknowledged,
            "acknowledged_by": alert.acknowledged_by.get_username() if alert.acknowledged_by else None,
            "acknowledged_at": alert.acknowledged_at.isoformat() if alert.acknowledged_at else None,
            "inventory": inventory_summary(alert.inventory),
            "batch": batch_summary(alert.batch) if alert.batch_id else None,
        }

    @classmethod
    def list(cls,
             q: str = None,
             acknowledged: Optional[bool] = None,
             priority: str = None,
             alert_type: str = None,
             sort: str = "created_at",
             order: str = "desc",
             page: int = 1,
             limit: int = 20) -> Dict[str, Any]:
        queryset = cls.model.objects.select_related("inventory", "batch", "acknowledged_by")

        if acknowledged is not None:
            queryset = queryset.filter(acknowledged=acknowledged)

        if priority:
            if priority not in AlertLog.Priority.values:
                raise ValidationError(f"Invalid priority. Valid: {AlertLog.Priority.values}", "priority")
            queryset = queryset.filter(priority_level=priority)

        if alert_type:
            if alert_type not in AlertLog.AlertType.values:
                raise ValidationError(f"Invalid alert type. Valid: {AlertLog.AlertType.values}", "type")
            queryset = queryset.filter(alert_type=alert_type)

        if q:
            queryset = queryset.filter(
                Q(message__icontains=q) |
                Q(inventory__item_name__icontains=q) |
                Q(inventory__barcode__icontains=q) |
                Q(inventory__warehouse_name__icontains=q)
            )

        descending = order != "asc"
        if sort == "priority":
            rank = cls.PRIORITY_RANK.desc() if descending else cls.PRIORITY_RANK.asc()
            queryset = queryset.order_by(rank, "-created_at", "-id")
        else:
            queryset = queryset.order_by(
                *(["-created_at", "-id"] if descending else ["created_at", "id"])
            )

        alerts, pagination = paginate_queryset(queryset, page, limit, max_per_page=200)

        return success_response({
            "rows": [cls.serialize(a) for a in alerts],
            "total": pagination["total_items"],
            "pagination": pagination,
        })

    @classmethod
    @transaction.atomic
    def acknowledge(cls, alert_id: int, user) -> Dict[str, Any]:
        alert = cls.get_or_404(alert_id)

        if not alert.acknowledged:
            alert.acknowledged = True
            alert.acknowledged_by = user
            alert.acknowledged_at = timezone.now()
            alert.save(update_fields=["acknowledged", "acknowledged_by", "acknowledged_at"])
            logger.info(f"Alert #{alert.pk} acknowledged by user {user.pk}")

        return success_response({"ok": True, "alert": cls.serialize(alert)}, "Alert acknowledged")

    @classmethod
    def get_or_404(cls, id: int) -> AlertLog:
        alert = cls.model.objects.select_related("inventory", "batch", "acknowledged_by").filter(id=id).first()
        if alert is None:
            raise NotFoundError("Alert", id)
        return alert

    @classmethod
    def active_rows(cls, today: date = None) -> List[Dict[str, Any]]:
        """Alert conditions computed live from current stock, not from AlertLog."""
        from inventory.services.expiry_service import ExpiryAlertService

        low_stock = InventoryRecord.objects.filter(
            stock_alert_level__gt=0, stock_qty__lte=F("stock_alert_level")
        ).order_by("item_name", "warehouse_name")

        negative = InventoryRecord.objects.filter(stock_qty__lt=0).order_by(
            "item_name", "warehouse_name"
        )

        rows = [
            {
                "type": AlertLog.AlertType.LOW_STOCK.value,
                "priority": str(low_stock_priority(record.stock_qty)),
                "message": low_stock_message(record),
                "created_at": None,
                "inventory": inventory_summary(record),
            }
            for record in low_stock
        ]
        rows.extend(ExpiryAlertService.expiring_rows(today))
        rows.extend(
            {
                "type": AlertLog.AlertType.NEGATIVE_STOCK.value,
                "priority": AlertLog.Priority.HIGH.value,
                "message": (
                    f"Negative stock: {record.item_name} ({record.barcode}) at "
                    f"{record.warehouse_name} - qty {format_quantity(record.stock_qty)}"
                ),
                "created_at": None,
                "inventory": inventory_summary(record),
            }
            for record in negative
        )
        return rows

    @classmethod
    def active(cls, today: date = None) -> Dict[str, Any]:
        rows = cls.active_rows(today)
        counts = {
            "low_stock": sum(1 for r in rows if r["type"] == AlertLog.AlertType.LOW_STOCK),
            "expiring": sum(1 for r in rows if r["type"] == AlertLog.AlertType.EXPIRING),
            "negative": sum(1 for r in rows if r["type"] == AlertLog.AlertType.NEGATIVE_STOCK),
        }
        return success_response({"rows": rows, "counts": counts})


class AlertNotificationService:
    """Periodic email sweep over the live alert rows."""

    def __init__(self, settings_store=None, dispatcher=None):
        if settings_store is None:
            from inventory.services.settings_service import AppSettingService
            settings_store = AppSettingService
        self.settings_store = settings_store
        self._dispatcher = dispatcher

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            from inventory.services.notification_service import get_dispatcher
            self._dispatcher = get_dispatcher()
        return self._dispatcher

    @staticmethod
    def notice_for(row: Dict[str, Any]):
        from inventory.services.notification_service import AlertNotice

        record = row["inventory"]
        return AlertNotice(
            alert_type=row["type"],
            priority=row["priority"],
            message=row["message"],
            item_name=record["item_name"],
            barcode=record["barcode"],
            warehouse=record["warehouse"],
            created_at=timezone.now(),
        )

    def notify_active(self, today: date = None) -> Dict[str, Any]:
        recipients = self.settings_store.alert_recipients()
        if not recipients:
            return success_response({"sent": 0, "skipped": 0, "errors": 0, "total_alerts": 0},
                                    "No email recipients configured")

        rows = AlertService.active_rows(today)
        sent = skipped = errors = 0

        for row in rows:
            try:
                result = self.dispatcher.notify(self.notice_for(row), recipients)
            except Exception:
                logger.exception("Error sending alert email")
                errors += 1
                continue

            if result.ok:
                sent += 1
            elif result.skipped:
                skipped += 1
            else:
                errors += 1

        logger.info(f"Alert sweep: {len(rows)} alert(s), sent={sent} skipped={skipped} errors={errors}")

        return success_response({
            "total_alerts": len(rows),
            "sent": sent,
            "skipped": skipped,
            "errors": errors,
            "recipients": len(recipients),
        }, "Alert notifications processed")

    def preview(self, today: date = None) -> Dict[str, Any]:
        recipients = self.settings_store.alert_recipients()
        counts = AlertService.active(today)["counts"]
        counts["total"] = sum(counts.values())
        return success_response({
            "recipients": recipients,
            "alert_counts": counts,
            "email_configured": bool(recipients),
            "smtp_configured": self.dispatcher.transport.is_configured(),
        })
