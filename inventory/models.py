from decimal import Decimal

from django.conf import settings
from django.db import models


class InventoryRecord(models.Model):
    """
    Current stock of one item in one warehouse.
    stock_qty is only moved by the stock movement service and always equals
    the signed sum of the record's ledger entries.
    """

    barcode = models.CharField(max_length=100, db_index=True)
    warehouse_name = models.CharField(max_length=100, db_index=True)
    item_name = models.CharField(max_length=200)
    category = models.CharField(max_length=100, blank=True, default="")
    unit = models.CharField(max_length=20, blank=True, default="")

    stock_qty = models.DecimalField(max_digits=15, decimal_places=4, default=0)
    # 0 disables the low-stock trigger
    stock_alert_level = models.DecimalField(max_digits=15, decimal_places=4, default=0)

    expire_date = models.DateField(null=True, blank=True, db_index=True)
    # Days before expire_date at which the record shows up as expiring, 0 disables
    expire_date_alert = models.PositiveIntegerField(default=0)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["item_name", "warehouse_name"]
        constraints = [
            models.UniqueConstraint(
                fields=["barcode", "warehouse_name"], name="unique_barcode_warehouse"
            ),
        ]

    @property
    def low_stock_enabled(self):
        return self.stock_alert_level > 0

    def __str__(self):
        return f"{self.item_name} ({self.barcode}) @ {self.warehouse_name}: {self.stock_qty}"


class StockTransaction(models.Model):
    """
    Append-only ledger row. quantity is always a positive magnitude,
    the direction comes from transaction_type (and quantity_before/after
    for transfers and adjustments).
    """

    class TransactionType(models.TextChoices):
        RECEIVE = "receive", "Receive"
        ISSUE = "issue", "Issue"
        TRANSFER = "transfer", "Transfer"
        ADJUSTMENT = "adjustment", "Adjustment"

    inventory = models.ForeignKey(
        InventoryRecord, on_delete=models.PROTECT, related_name="transactions"
    )
    transaction_type = models.CharField(
        max_length=20, choices=TransactionType.choices, db_index=True
    )
    quantity = models.DecimalField(max_digits=15, decimal_places=4)
    quantity_before = models.DecimalField(max_digits=15, decimal_places=4)
    quantity_after = models.DecimalField(max_digits=15, decimal_places=4)
    transaction_date = models.DateTimeField(db_index=True)

    reference_doc = models.CharField(max_length=100, blank=True, null=True)
    reason = models.TextField(blank=True, null=True)

    # Transfer rows only
    from_warehouse = models.CharField(max_length=100, blank=True, default="")
    to_warehouse = models.CharField(max_length=100, blank=True, default="")

    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="stock_transactions",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-transaction_date", "-id"]
        indexes = [
            models.Index(fields=["inventory", "transaction_date"], name="inv_txn_record_date_idx"),
            models.Index(fields=["transaction_type", "transaction_date"], name="inv_txn_type_date_idx"),
        ]

    @property
    def signed_quantity(self) -> Decimal:
        if self.transaction_type == self.TransactionType.RECEIVE:
            return self.quantity
        if self.transaction_type == self.TransactionType.ISSUE:
            return -self.quantity
        if self.quantity_after < self.quantity_before:
            return -self.quantity
        return self.quantity

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ValueError("Stock transactions are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Stock transactions cannot be deleted")

    def __str__(self):
        return f"#{self.pk} {self.get_transaction_type_display()} {self.quantity} | {self.inventory_id}"


class Batch(models.Model):
    """
    A received lot of one inventory record with its own expiry date.
    quantity_remaining starts at quantity_received.
    """

    batch_number = models.CharField(max_length=100, unique=True)
    inventory = models.ForeignKey(
        InventoryRecord, on_delete=models.PROTECT, related_name="batches"
    )
    warehouse_name = models.CharField(max_length=100)

    quantity_received = models.DecimalField(max_digits=15, decimal_places=4)
    quantity_remaining = models.DecimalField(max_digits=15, decimal_places=4)

    manufacture_date = models.DateField(null=True, blank=True)
    expiry_date = models.DateField(db_index=True)

    supplier_info = models.CharField(max_length=200, blank=True, default="")
    lot_number = models.CharField(max_length=100, blank=True, default="")
    cost_per_unit = models.DecimalField(max_digits=15, decimal_places=4, null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["expiry_date", "batch_number"]
        verbose_name_plural = "Batches"

    def __str__(self):
        return f"{self.batch_number} ({self.inventory_id}) exp {self.expiry_date}"


class BatchTransaction(models.Model):
    """Append-only movement row for a batch."""

    batch = models.ForeignKey(Batch, on_delete=models.PROTECT, related_name="transactions")
    transaction_type = models.CharField(
        max_length=20, choices=StockTransaction.TransactionType.choices
    )
    quantity = models.DecimalField(max_digits=15, decimal_places=4)
    transaction_date = models.DateTimeField()
    reason = models.TextField(blank=True, null=True)
    reference_doc = models.CharField(max_length=100, blank=True, null=True)
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="batch_transactions",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-transaction_date", "-id"]

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ValueError("Batch transactions are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Batch transactions cannot be deleted")

    def __str__(self):
        return f"#{self.pk} {self.get_transaction_type_display()} {self.quantity} | {self.batch_id}"


class AlertLog(models.Model):
    class AlertType(models.TextChoices):
        LOW_STOCK = "low_stock", "Low Stock"
        NEGATIVE_STOCK = "negative_stock", "Negative Stock"
        EXPIRING = "expiring", "Expiring"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        MEDIUM = "medium", "Medium"
        HIGH = "high", "High"

    alert_type = models.CharField(max_length=20, choices=AlertType.choices, db_index=True)
    priority_level = models.CharField(
        max_length=10, choices=Priority.choices, default=Priority.MEDIUM
    )
    message = models.TextField()
    inventory = models.ForeignKey(
        InventoryRecord, on_delete=models.PROTECT, related_name="alerts"
    )
    # Set for batch expiry alerts
    batch = models.ForeignKey(
        Batch, on_delete=models.PROTECT, null=True, blank=True, related_name="alerts"
    )
    acknowledged = models.BooleanField(default=False, db_index=True)
    acknowledged_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="acknowledged_alerts",
    )
    acknowledged_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["inventory", "alert_type", "acknowledged"], name="inv_alert_rec_type_ack_idx"),
        ]

    def __str__(self):
        return f"[{self.priority_level}] {self.get_alert_type_display()} | {self.inventory_id}"


class AppSetting(models.Model):
    """
    Key/value application settings. Values are stored as JSON so a key can
    hold a flag, a number or a list of strings.
    """

    key = models.CharField(max_length=100, unique=True)
    value = models.JSONField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]

    def __str__(self):
        return self.key
