"""
Batch Service - tracked receipts with their own expiry dates
"""
from datetime import timedelta
from typing import Dict, Any, Optional

from django.utils import timezone

from inventory.models import Batch
from inventory.services.base_service import (
    BaseService, success_response, paginate_queryset, format_quantity, ValidationError,
)


class BatchService(BaseService):
    model = Batch

    @classmethod
    def serialize(cls, batch: Batch, include_transactions: bool = False) -> Dict[str, Any]:
        days_left = (batch.expiry_date - timezone.localdate()).days
        data = {
            "id": batch.id,
            "batch_number": batch.batch_number,
            "inventory_id": batch.inventory_id,
            "item_name": batch.inventory.item_name,
            "barcode": batch.inventory.barcode,
            "warehouse_name": batch.warehouse_name,
            "quantity_received": format_quantity(batch.quantity_received),
            "quantity_remaining": format_quantity(batch.quantity_remaining),
            "manufacture_date": batch.manufacture_date.isoformat() if batch.manufacture_date else None,
            "expiry_date": batch.expiry_date.isoformat(),
            "days_until_expiry": days_left,
            "is_expired": days_left < 0,
            "supplier_info": batch.supplier_info,
            "lot_number": batch.lot_number,
            "cost_per_unit": format_quantity(batch.cost_per_unit) if batch.cost_per_unit is not None else None,
            "notes": batch.notes,
            "created_at": batch.created_at.isoformat() if batch.created_at else None,
        }

        if include_transactions:
            data["transactions"] = [
                {
                    "id": t.id,
                    "transaction_type": t.transaction_type,
                    "quantity": format_quantity(t.quantity),
                    "transaction_date": t.transaction_date.isoformat(),
                    "reason": t.reason,
                }
                for t in batch.transactions.all()
            ]

        return data

    @classmethod
    def list(cls,
             barcode: str = None,
             warehouse_name: str = None,
             expiring_within_days: Optional[int] = None,
             has_stock_only: bool = True,
             page: int = 1,
             per_page: int = 50) -> Dict[str, Any]:
        """Batches ordered first-expiry-first."""
        queryset = cls.model.objects.select_related("inventory")

        if barcode:
            queryset = queryset.filter(inventory__barcode=barcode)

        if warehouse_name:
            queryset = queryset.filter(warehouse_name=warehouse_name)

        if has_stock_only:
            queryset = queryset.filter(quantity_remaining__gt=0)

        if expiring_within_days is not None:
            if expiring_within_days < 0:
                raise ValidationError("days must be zero or greater", "days")
            threshold = timezone.localdate() + timedelta(days=expiring_within_days)
            queryset = queryset.filter(expiry_date__lte=threshold)

        queryset = queryset.order_by("expiry_date", "created_at")

        batches, pagination = paginate_queryset(queryset, page, per_page, max_per_page=200)

        return success_response({
            "batches": [cls.serialize(b) for b in batches],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, batch_id: int) -> Dict[str, Any]:
        return success_response({"batch": cls.serialize(cls.get_or_404(batch_id), include_transactions=True)})
