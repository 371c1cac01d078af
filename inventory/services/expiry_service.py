from datetime import date, timedelta
from typing import Dict, Any, List, Tuple

from django.utils import timezone

from inventory.models import AlertLog, Batch, InventoryRecord
from inventory.services.base_service import success_response
from inventory.services.alert_service import (
    BATCH_EXPIRY_WINDOW, batch_expiry_message, batch_expiry_priority, batch_summary, inventory_summary,
)


class ExpiryAlertService:
    """Read-time expiry scan over records and batches. Nothing here writes AlertLog rows."""

    @staticmethod
    def days_left(record: InventoryRecord, today: date) -> int:
        return (record.expire_date - today).days

    @classmethod
    def expiring(cls, today: date = None) -> List[Tuple[InventoryRecord, int]]:
        today = today or timezone.localdate()
        candidates = InventoryRecord.objects.filter(
            expire_date__isnull=False, expire_date_alert__gt=0
        ).order_by("expire_date", "item_name")

        result = []
        for record in candidates:
            days = cls.days_left(record, today)
            if days <= record.expire_date_alert:
                result.append((record, days))
        return result

    @staticmethod
    def expiring_batches(today: date = None) -> List[Tuple[Batch, int]]:
        """Batches with stock left that expire within the batch window, expired ones included."""
        today = today or timezone.localdate()
        batches = Batch.objects.select_related("inventory").filter(
            quantity_remaining__gt=0,
            expiry_date__lte=today + timedelta(days=BATCH_EXPIRY_WINDOW),
        ).order_by("expiry_date", "batch_number")
        return [(batch, (batch.expiry_date - today).days) for batch in batches]

    @staticmethod
    def message(record: InventoryRecord, days: int) -> str:
        when = f"in {days} day(s)" if days > 0 else "(expired)"
        return (
            f"Expiring {when}: {record.item_name} ({record.barcode}) at "
            f"{record.warehouse_name} - expires {record.expire_date.isoformat()}"
        )

    @staticmethod
    def priority(days: int) -> str:
        return AlertLog.Priority.HIGH.value if days <= 0 else AlertLog.Priority.MEDIUM.value

    @classmethod
    def expiring_rows(cls, today: date = None) -> List[Dict[str, Any]]:
        rows = [
            {
                "type": AlertLog.AlertType.EXPIRING.value,
                "priority": cls.priority(days),
                "message": cls.message(record, days),
                "created_at": None,
                "days_left": days,
                "inventory": inventory_summary(record),
            }
            for record, days in cls.expiring(today)
        ]
        rows.extend(
            {
                "type": AlertLog.AlertType.EXPIRING.value,
                "priority": batch_expiry_priority(days),
                "message": batch_expiry_message(batch, days),
                "created_at": None,
                "days_left": days,
                "inventory": inventory_summary(batch.inventory),
                "batch": batch_summary(batch),
            }
            for batch, days in cls.expiring_batches(today)
        )
        return rows

    @classmethod
    def list(cls, today: date = None) -> Dict[str, Any]:
        rows = cls.expiring_rows(today)
        return success_response({"rows": rows, "count": len(rows)})
