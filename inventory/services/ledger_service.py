import logging
from decimal import Decimal
from typing import Dict, Any

from inventory.models import InventoryRecord, StockTransaction
from inventory.services.base_service import (
    BaseService, success_response, paginate_queryset, format_quantity, ValidationError,
)

logger = logging.getLogger(__name__)


class StockTransactionService(BaseService):
    """Read side of the append-only ledger. Rows are written by the movement and record services."""

    model = StockTransaction

    @classmethod
    def serialize(cls, txn: StockTransaction) -> Dict[str, Any]:
        return {
            "id": txn.id,
            "inventory_id": txn.inventory_id,
            "barcode": txn.inventory.barcode,
            "item_name": txn.inventory.item_name,
            "warehouse_name": txn.inventory.warehouse_name,
            "transaction_type": txn.transaction_type,
            "quantity": format_quantity(txn.quantity),
            "signed_quantity": format_quantity(txn.signed_quantity),
            "quantity_before": format_quantity(txn.quantity_before),
            "quantity_after": format_quantity(txn.quantity_after),
            "transaction_date": txn.transaction_date.isoformat(),
            "reference_doc": txn.reference_doc,
            "reason": txn.reason,
            "from_warehouse": txn.from_warehouse or None,
            "to_warehouse": txn.to_warehouse or None,
            "processed_by": txn.processed_by.get_username() if txn.processed_by_id else None,
        }

    @classmethod
    def history(cls,
                inventory_id: int = None,
                barcode: str = None,
                warehouse_name: str = None,
                transaction_type: str = None,
                page: int = 1,
                per_page: int = 50) -> Dict[str, Any]:
        queryset = cls.model.objects.select_related("inventory", "processed_by")

        if inventory_id:
            queryset = queryset.filter(inventory_id=inventory_id)

        if barcode:
            queryset = queryset.filter(inventory__barcode=barcode)

        if warehouse_name:
            queryset = queryset.filter(inventory__warehouse_name=warehouse_name)

        if transaction_type:
            if transaction_type not in StockTransaction.TransactionType.values:
                raise ValidationError(
                    f"Invalid transaction type. Valid: {StockTransaction.TransactionType.values}",
                    "type",
                )
            queryset = queryset.filter(transaction_type=transaction_type)

        queryset = queryset.order_by("-transaction_date", "-id")

        transactions, pagination = paginate_queryset(queryset, page, per_page, max_per_page=200)

        return success_response({
            "transactions": [cls.serialize(t) for t in transactions],
            "pagination": pagination,
            "types": [{"value": c[0], "label": c[1]} for c in StockTransaction.TransactionType.choices],
        })

    @classmethod
    def ledger_balance(cls, record: InventoryRecord) -> Decimal:
        """Replay the record's ledger; equals record.stock_qty when the ledger is intact."""
        balance = Decimal("0")
        for txn in cls.model.objects.filter(inventory=record).order_by("transaction_date", "id"):
            balance += txn.signed_quantity
        return balance
